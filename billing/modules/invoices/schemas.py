from billing.common.schemas import CamelModel


class InvoiceOut(CamelModel):
    bill_id: int
    filename: str
    invoice_url: str
