"""
Status transitions for a machine's maintenance cycle.

Outstanding is the initial state. ``complete`` moves any machine to Done and
``reschedule`` moves any machine to Outstanding; each forces its target status
whatever the current one is. A missing machine is reported before a bad value.
"""
from typing import Any

from ..errors import InvalidFieldError
from ..models.models import PmMachine
from ..schemas.pm import PmStatus, required_text
from .machines import PmMachineStore


def _checked(field: str, value: Any) -> str:
    try:
        return required_text(value)
    except ValueError as e:
        raise InvalidFieldError(f"{field}: {e}")


def complete(store: PmMachineStore, id_msn: str, tgl_selesai_pm: str) -> PmMachine:
    """Record the completion date and mark the cycle Done"""
    store.get_by_key(id_msn)
    return store.update(
        id_msn,
        {
            "tgl_selesai_pm": _checked("tglSelesaiPM", tgl_selesai_pm),
            "status": PmStatus.done,
        },
    )


def reschedule(store: PmMachineStore, id_msn: str, periode_pm: str) -> PmMachine:
    """Open a new cycle; tgl_selesai_pm from the previous cycle is left as it was"""
    store.get_by_key(id_msn)
    return store.update(
        id_msn,
        {
            "periode_pm": _checked("periodePM", periode_pm),
            "status": PmStatus.outstanding,
        },
    )
