"""
Invoice PDF generator.
Renders a payment and its line items with reportlab.
"""
import io
import logging
from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from coaching_api.models.payment import Payment
from coaching_api.models.user import User, Organization

logger = logging.getLogger(__name__)


def format_money(value: float, currency: str) -> str:
    return f"{currency} {value:,.2f}"


def _date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "-"


class InvoicePDFGenerator:
    """Generate an invoice PDF for a payment."""

    def __init__(self, payment: Payment, coach: User, organization: Optional[Organization] = None):
        self.payment = payment
        self.coach = coach
        self.organization = organization

        # PDF settings
        self.page_width, self.page_height = letter
        self.margin = 0.75 * inch
        self.content_width = self.page_width - (2 * self.margin)

        self.brand_color = colors.HexColor("#4f46e5")
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#f1f5f9")

    def _styles(self) -> dict:
        styles = getSampleStyleSheet()
        return {
            "title": ParagraphStyle(
                "InvoiceTitle",
                parent=styles["Heading1"],
                fontSize=22,
                textColor=self.brand_color,
                spaceAfter=6,
            ),
            "normal": ParagraphStyle(
                "InvoiceNormal",
                parent=styles["Normal"],
                fontSize=10,
                textColor=self.dark_gray,
                leading=14,
            ),
            "cell": ParagraphStyle(
                "InvoiceCell",
                parent=styles["Normal"],
                fontSize=9,
                leading=12,
            ),
        }

    def _header(self, styles: dict) -> list:
        payment = self.payment
        org_name = self.organization.name if self.organization else ""
        billing = self.organization.billing_email if self.organization and self.organization.billing_email else ""
        lines = [
            Paragraph("INVOICE", styles["title"]),
            Paragraph(f"<b>{escape(org_name)}</b> {escape(billing)}", styles["normal"]),
            Spacer(1, 0.15 * inch),
        ]
        meta = [
            ["Invoice number", payment.invoice_number],
            ["Issued", _date(payment.created_at)],
            ["Due", _date(payment.due_date)],
            ["Status", payment.status.upper()],
            ["Billed to", f"{self.coach.full_name} ({self.coach.email})"],
        ]
        if payment.period_start or payment.period_end:
            meta.append(["Period", f"{_date(payment.period_start)} to {_date(payment.period_end)}"])
        table = Table(meta, colWidths=[1.6 * inch, self.content_width - 1.6 * inch])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("TEXTCOLOR", (0, 0), (-1, -1), self.dark_gray),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]))
        lines.extend([table, Spacer(1, 0.3 * inch)])
        return lines

    def _line_items(self, styles: dict) -> Table:
        currency = self.payment.currency
        rows = [["Description", "Minutes", "Rate", "Amount"]]
        for item in self.payment.line_items:
            rows.append([
                Paragraph(escape(item.get("description") or ""), styles["cell"]),
                str(item.get("duration") or ""),
                format_money(item.get("rate") or 0, currency),
                format_money(item.get("amount") or 0, currency),
            ])
        rows.append(["", "", "Subtotal", format_money(self.payment.amount, currency)])
        rows.append(["", "", "Tax", format_money(self.payment.tax_amount, currency)])
        rows.append(["", "", "Total", format_money(self.payment.total_amount, currency)])

        widths = [self.content_width - 4.2 * inch, 0.9 * inch, 1.5 * inch, 1.8 * inch]
        table = Table(rows, colWidths=widths, repeatRows=1)
        body_end = len(self.payment.line_items)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), self.brand_color),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("ROWBACKGROUNDS", (0, 1), (-1, body_end), [colors.white, self.light_gray]),
            ("LINEABOVE", (2, body_end + 1), (-1, body_end + 1), 0.75, self.dark_gray),
            ("FONTNAME", (2, -1), (-1, -1), "Helvetica-Bold"),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ]))
        return table

    def generate(self) -> bytes:
        """Generate PDF and return bytes"""
        logger.info(f"Generating invoice PDF for payment {self.payment.id}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"Invoice {self.payment.invoice_number}",
        )

        styles = self._styles()
        story = self._header(styles)
        story.append(self._line_items(styles))
        if self.payment.notes:
            story.extend([Spacer(1, 0.3 * inch), Paragraph(f"<b>Notes:</b> {escape(self.payment.notes)}", styles["normal"])])

        doc.build(story)
        return buffer.getvalue()
