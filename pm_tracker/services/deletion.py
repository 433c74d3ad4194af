"""Two ways of deleting a machine: reset its cycle, or drop the row."""
import structlog

from ..schemas.pm import PmStatus
from .machines import PmMachineStore

logger = structlog.get_logger(__name__)


def reset_cycle(store: PmMachineStore, id_msn: str) -> None:
    # keeps no, id_msn, alamat, pengelola and teknisi
    store.update(
        id_msn,
        {
            "periode_pm": None,
            "tgl_selesai_pm": None,
            "status": PmStatus.outstanding,
        },
    )
    logger.info("pm_machine_reset", id_msn=id_msn)


def delete_machine(store: PmMachineStore, id_msn: str, delete_all: bool = False) -> None:
    if delete_all:
        store.delete(id_msn)
    else:
        reset_cycle(store, id_msn)
