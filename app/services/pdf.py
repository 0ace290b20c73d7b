"""
PDF Generation Service.
Renders invoice PDFs in memory using ReportLab.
"""

from datetime import datetime
from decimal import Decimal
from io import BytesIO
from typing import Callable
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
)

from app.core.clock import utcnow
from app.schemas.invoice import InvoiceWithDetails
from app.schemas.user import UserResponse


class PDFService:
    """Service for rendering invoice PDFs."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

        # Colors
        self.primary_color = colors.HexColor("#2563EB")  # Blue
        self.secondary_color = colors.HexColor("#1E40AF")  # Dark blue
        self.gray_color = colors.HexColor("#6B7280")
        self.light_gray = colors.HexColor("#F3F4F6")
        self.border_color = colors.HexColor("#E5E7EB")

    def _get_styles(self):
        """Get custom paragraph styles."""
        styles = getSampleStyleSheet()

        styles.add(ParagraphStyle(
            name='InvoiceTitle',
            parent=styles['Heading1'],
            fontSize=24,
            textColor=self.primary_color,
            spaceAfter=6*mm,
        ))
        styles.add(ParagraphStyle(
            name='Subtitle',
            parent=styles['Normal'],
            fontSize=10,
            textColor=self.gray_color,
        ))
        styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=styles['Heading2'],
            fontSize=12,
            textColor=self.secondary_color,
            spaceBefore=4*mm,
            spaceAfter=2*mm,
        ))
        styles.add(ParagraphStyle(
            name='NormalText',
            parent=styles['Normal'],
            fontSize=10,
            textColor=colors.black,
        ))
        styles.add(ParagraphStyle(
            name='SmallText',
            parent=styles['Normal'],
            fontSize=8,
            textColor=self.gray_color,
        ))
        styles.add(ParagraphStyle(
            name='RightAlign',
            parent=styles['Normal'],
            fontSize=10,
            alignment=TA_RIGHT,
        ))
        styles.add(ParagraphStyle(
            name='Bold',
            parent=styles['Normal'],
            fontSize=10,
            fontName='Helvetica-Bold',
        ))

        return styles

    def _format_currency(self, amount: Decimal, currency: str) -> str:
        """Format amount with its currency code."""
        return f"{amount:,.2f} {currency}"

    def _format_date(self, d) -> str:
        return d.strftime("%B %d, %Y")

    def render_invoice(self, invoice: InvoiceWithDetails, owner: UserResponse) -> bytes:
        """
        Render an invoice as a PDF document.

        Args:
            invoice: Invoice with its client and items
            owner: Business profile shown in the header

        Returns:
            PDF file content
        """
        styles = self._get_styles()
        currency = invoice.currency
        buffer = BytesIO()

        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=20*mm,
            leftMargin=20*mm,
            topMargin=20*mm,
            bottomMargin=20*mm,
            title=f"Invoice {invoice.invoice_number}",
            author=owner.business_name,
        )

        elements = []

        # ===== HEADER =====
        header_data = [
            [
                Paragraph(f"<b>{escape(owner.business_name)}</b>", styles['Bold']),
                Paragraph("<b>INVOICE</b>", styles['InvoiceTitle']),
            ],
            [
                Paragraph(escape(owner.address or ""), styles['SmallText']),
                Paragraph(f"No. {escape(invoice.invoice_number)}", styles['Subtitle']),
            ],
            [
                Paragraph(f"Contact: {escape(owner.contact_person)}", styles['SmallText']),
                Paragraph(f"Date: {self._format_date(invoice.invoice_date)}", styles['SmallText']),
            ],
            [
                Paragraph(f"Email: {escape(owner.email)}", styles['SmallText']),
                Paragraph(f"Due: {self._format_date(invoice.due_date)}", styles['SmallText']),
            ],
        ]

        if owner.phone:
            header_data.append([
                Paragraph(f"Phone: {escape(owner.phone)}", styles['SmallText']),
                Paragraph(f"Status: {invoice.status.value.upper()}", styles['SmallText']),
            ])

        header_table = Table(header_data, colWidths=[95*mm, 75*mm])
        header_table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ]))
        elements.append(header_table)
        elements.append(Spacer(1, 10*mm))

        # ===== CLIENT INFO =====
        client = invoice.client
        elements.append(Paragraph("BILL TO", styles['SectionHeader']))

        client_info = f"<b>{escape(client.name)}</b>"
        if client.address:
            client_info += f"<br/>{escape(client.address)}"
        client_info += f"<br/>Email: {escape(client.email)}"
        if client.phone:
            client_info += f"<br/>Phone: {escape(client.phone)}"

        elements.append(Paragraph(client_info, styles['NormalText']))
        elements.append(Spacer(1, 8*mm))

        # ===== INVOICE ITEMS TABLE =====
        elements.append(Paragraph("DETAILS", styles['SectionHeader']))

        items_data = [
            [
                Paragraph("<b>Description</b>", styles['Bold']),
                Paragraph("<b>Qty</b>", styles['Bold']),
                Paragraph("<b>Rate</b>", styles['Bold']),
                Paragraph("<b>Amount</b>", styles['Bold']),
            ]
        ]

        for item in invoice.items:
            items_data.append([
                Paragraph(escape(item.description), styles['NormalText']),
                Paragraph(str(item.quantity), styles['RightAlign']),
                Paragraph(self._format_currency(item.rate, currency), styles['RightAlign']),
                Paragraph(self._format_currency(item.amount, currency), styles['RightAlign']),
            ])

        items_table = Table(
            items_data,
            colWidths=[80*mm, 20*mm, 35*mm, 35*mm],
            repeatRows=1,
        )
        items_table.setStyle(TableStyle([
            # Header style
            ('BACKGROUND', (0, 0), (-1, 0), self.primary_color),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 10),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 4*mm),
            ('TOPPADDING', (0, 0), (-1, 0), 4*mm),

            # Body style
            ('BACKGROUND', (0, 1), (-1, -1), colors.white),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 1), (-1, -1), 3*mm),
            ('TOPPADDING', (0, 1), (-1, -1), 3*mm),
            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),

            # Borders
            ('LINEBELOW', (0, 0), (-1, 0), 1, self.primary_color),
            ('LINEBELOW', (0, 1), (-1, -2), 0.5, self.border_color),
            ('LINEBELOW', (0, -1), (-1, -1), 1, self.border_color),

            # Alternating row colors
            *[('BACKGROUND', (0, i), (-1, i), self.light_gray)
              for i in range(2, len(items_data), 2)],
        ]))

        elements.append(items_table)
        elements.append(Spacer(1, 6*mm))

        # ===== TOTALS =====
        totals_data = [
            ["Subtotal", self._format_currency(invoice.subtotal, currency)],
            [f"Tax ({invoice.tax_rate}%)", self._format_currency(invoice.tax_amount, currency)],
            ["Total", self._format_currency(invoice.total, currency)],
        ]

        totals_table = Table(totals_data, colWidths=[130*mm, 45*mm])
        totals_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TOPPADDING', (0, 0), (-1, -1), 2*mm),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 2*mm),
            ('LINEABOVE', (0, -1), (-1, -1), 1, self.primary_color),
            ('BACKGROUND', (0, -1), (-1, -1), self.light_gray),
        ]))

        elements.append(totals_table)
        elements.append(Spacer(1, 10*mm))

        # ===== NOTES =====
        if invoice.notes:
            elements.append(Paragraph("NOTES", styles['SectionHeader']))
            elements.append(Paragraph(escape(invoice.notes), styles['NormalText']))
            elements.append(Spacer(1, 4*mm))

        # ===== FOOTER =====
        elements.append(Spacer(1, 10*mm))
        footer_text = f"<i>Generated on {self._format_date(self.clock())}</i>"
        elements.append(Paragraph(footer_text, styles['SmallText']))

        doc.build(elements)
        return buffer.getvalue()
