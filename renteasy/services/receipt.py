"""
PDF rent receipts rendered with reportlab.
"""

import io
from decimal import Decimal
from typing import List

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, HRFlowable

from renteasy.config import settings
from renteasy.models.payment import Payment
from renteasy.utils.months import month_label


def format_amount(amount, currency: str) -> str:
    value = Decimal(amount or 0).quantize(Decimal("0.01"))
    return f"{currency.upper()} {value:,}"


class ReceiptGenerator:
    """Builds a one-page receipt for a payment."""

    def __init__(self, brand: str = None):
        self.brand = brand or settings.receipt_brand
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name='ReceiptBrand',
            parent=self.styles['Heading1'],
            fontSize=22,
            spaceAfter=6,
            alignment=TA_CENTER,
            textColor=colors.HexColor('#1a1a2e'),
        ))
        self.styles.add(ParagraphStyle(
            name='ReceiptSubtitle',
            parent=self.styles['Normal'],
            fontSize=11,
            spaceAfter=18,
            alignment=TA_CENTER,
            textColor=colors.HexColor('#666666'),
        ))
        self.styles.add(ParagraphStyle(
            name='ReceiptSection',
            parent=self.styles['Heading2'],
            fontSize=13,
            spaceBefore=16,
            spaceAfter=8,
            textColor=colors.HexColor('#1a1a2e'),
        ))
        self.styles.add(ParagraphStyle(
            name='ReceiptFooter',
            parent=self.styles['Normal'],
            fontSize=8,
            textColor=colors.HexColor('#888888'),
            alignment=TA_CENTER,
            spaceBefore=24,
        ))

    def _details_rows(self, payment: Payment) -> List[List[str]]:
        paid_at = payment.paid_at or payment.created_at
        months = ", ".join(month_label(month) for month in payment.months_paid or []) or "None"
        rows = [
            ["Receipt No:", str(payment.id)],
            ["Status:", payment.status.value.title()],
            ["Paid On:", paid_at.strftime("%d %b %Y %H:%M UTC") if paid_at else "N/A"],
            ["Months:", months],
        ]
        if payment.listing:
            rows.insert(1, ["Property:", payment.listing.title])
            rows.insert(2, ["Address:", payment.listing.address])
        if payment.tenant:
            rows.insert(1, ["Tenant:", payment.tenant.full_name])
        if payment.move_out_month:
            rows.append(["Move-out Month:", month_label(payment.move_out_month)])
        if payment.stripe_payment_intent_id:
            rows.append(["Reference:", payment.stripe_payment_intent_id])
        return rows

    def _charge_rows(self, payment: Payment) -> List[List[str]]:
        currency = payment.currency or settings.currency
        rows = [
            ["Rent", format_amount(payment.rent_subtotal, currency)],
            ["Service charge", format_amount(payment.service_charge, currency)],
        ]
        if payment.penalty_amount:
            rows.append(["Move-out notice fine", format_amount(payment.penalty_amount, currency)])
        rows.append(["Tax", format_amount(payment.tax, currency)])
        rows.append(["Platform fee", format_amount(payment.platform_fee, currency)])
        rows.append(["Total", format_amount(payment.total, currency)])
        return rows

    def generate(self, payment: Payment) -> bytes:
        """
        Render the receipt.

        Returns:
            PDF bytes
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=0.75*inch,
            leftMargin=0.75*inch,
            topMargin=0.75*inch,
            bottomMargin=0.75*inch,
            title=f"{self.brand} receipt {payment.id}",
        )

        story = []
        story.append(Paragraph(self.brand, self.styles['ReceiptBrand']))
        story.append(Paragraph("Rent Payment Receipt", self.styles['ReceiptSubtitle']))

        story.append(Paragraph("PAYMENT DETAILS", self.styles['ReceiptSection']))
        story.append(HRFlowable(width="100%", thickness=1, color=colors.HexColor('#e0e0e0')))
        details = Table(self._details_rows(payment), colWidths=[1.8*inch, 4.7*inch])
        details.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TEXTCOLOR', (0, 0), (0, -1), colors.HexColor('#666666')),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        story.append(details)

        story.append(Paragraph("CHARGES", self.styles['ReceiptSection']))
        story.append(HRFlowable(width="100%", thickness=1, color=colors.HexColor('#e0e0e0')))
        charges = Table(self._charge_rows(payment), colWidths=[4.5*inch, 2*inch])
        charges.setStyle(TableStyle([
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('LINEABOVE', (0, -1), (-1, -1), 1, colors.HexColor('#1a1a2e')),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        story.append(charges)

        story.append(Spacer(1, 0.3*inch))
        story.append(Paragraph(
            f"Thank you for paying rent through {self.brand}. Keep this receipt for your records.",
            self.styles['ReceiptFooter'],
        ))

        doc.build(story)
        return buffer.getvalue()
