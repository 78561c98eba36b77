from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Record(BaseModel):
    """One inventory entry as stored in a record table.

    Field order matters: ``payload`` serialises the fields in declaration
    order and scanners expect ``s_no`` first.
    """

    # MySQL tables created outside this app may hold numeric voucher columns.
    model_config = ConfigDict(coerce_numbers_to_str=True, frozen=True)

    s_no: int
    lp_no: str
    items: str
    issue_voucher_number: str

    def payload(self) -> bytes:
        """Compact JSON text of the record, as embedded in its QR code."""

        return self.model_dump_json().encode("utf-8")


class RecordCard(BaseModel):
    """A record plus everything the admin listing shows next to it."""

    record: Record
    qr: str
    qr_hd: str
    json_url: str
    json_text: str
