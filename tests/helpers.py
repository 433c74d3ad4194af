from io import BytesIO

import pandas as pd


def machine_data(id_msn, **overrides):
    data = {
        "idMsn": id_msn,
        "alamat": f"Jl. Sudirman {id_msn}",
        "pengelola": "Bank Mandiri",
        "teknisi": "Budi",
    }
    data.update(overrides)
    return data


def xlsx_bytes(rows, columns=None):
    buffer = BytesIO()
    pd.DataFrame(rows, columns=columns).to_excel(buffer, index=False)
    return buffer.getvalue()


def csv_bytes(rows, columns=None):
    return pd.DataFrame(rows, columns=columns).to_csv(index=False).encode("utf-8")
