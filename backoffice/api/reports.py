from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from typing import Optional
from datetime import datetime, timezone
import hashlib
import io
import logging

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from backoffice.api.deps import get_store
from backoffice.core.config import settings
from backoffice.core.summary import summarize_customers, summarize_dashboard
from backoffice.core.timestamps import format_timestamp
from backoffice.db.store import EntityStore
from backoffice.schemas.summary import CustomerSummary, DashboardSummary

router = APIRouter()
logger = logging.getLogger(__name__)


def _dashboard(store: EntityStore, start: Optional[str], end: Optional[str]) -> DashboardSummary:
    try:
        return summarize_dashboard(store, start=start, end=end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid date range: {e}")


@router.get("/customers/summary", response_model=CustomerSummary)
async def customer_summary(store: EntityStore = Depends(get_store)):
    return summarize_customers(store)


@router.get("/dashboard", response_model=DashboardSummary)
async def dashboard(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    store: EntityStore = Depends(get_store),
):
    return _dashboard(store, start, end)


@router.get("/reports/summary/pdf")
async def summary_pdf_report(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    store: EntityStore = Depends(get_store),
):
    logger.info(f"PDF summary report requested (start={start}, end={end})")
    summary = _dashboard(store, start, end)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4)
    styles = getSampleStyleSheet()
    elements = []

    # Header
    generated_at = datetime.now(timezone.utc)
    elements.append(Paragraph("Business Summary Report", styles['Title']))
    elements.append(Spacer(1, 12))
    elements.append(Paragraph(f"<b>Service:</b> {settings.PROJECT_NAME}", styles['Normal']))
    elements.append(Paragraph(f"<b>Period:</b> {start or 'beginning'} to {end or 'now'}", styles['Normal']))
    elements.append(Paragraph(f"<b>Generated:</b> {format_timestamp(generated_at, locale='en')}", styles['Normal']))
    elements.append(Spacer(1, 24))

    # Totals
    elements.append(Paragraph("Totals", styles['Heading2']))
    totals_data = [
        ["Metric", "Value"],
        ["Total Income", f"{summary.total_income:,.2f}"],
        ["Total Expense", f"{summary.total_expense:,.2f}"],
        ["Paid Salaries", f"{summary.paid_salaries:,.2f}"],
        ["Paid Bonuses", f"{summary.paid_bonuses:,.2f}"],
        ["Paid Commissions", f"{summary.paid_commissions:,.2f}"],
        ["Expense incl. Compensation", f"{summary.total_expense_with_compensation:,.2f}"],
        ["Net Profit", f"{summary.net_profit:,.2f}"],
        ["Teams", str(summary.team_count)],
        ["Transactions", str(summary.transaction_count)],
    ]
    totals_table = Table(totals_data, colWidths=[200, 150])
    totals_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.navy),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 24))

    # Category breakdown
    elements.append(Paragraph("Category Breakdown", styles['Heading2']))
    if summary.categories:
        category_data = [["Category", "Type", "Entries", "Total"]]
        for c in summary.categories:
            category_data.append([c.name, c.type, str(c.count), f"{c.total:,.2f}"])
        category_table = Table(category_data, colWidths=[170, 70, 60, 100])
        category_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
        ]))
        elements.append(category_table)
    else:
        elements.append(Paragraph("No transactions in this period.", styles['Normal']))

    elements.append(Spacer(1, 48))
    footer_text = "Figures come from the in-process fallback store and are not audited accounts."
    elements.append(Paragraph(footer_text, ParagraphStyle(name='Footer', fontSize=8, textColor=colors.grey, alignment=1)))

    try:
        doc.build(elements)
    except Exception as e:
        logger.error(f"PDF Build Failed: {str(e)}")
        raise HTTPException(status_code=500, detail="PDF generation failed during document build.")

    pdf_bytes = buffer.getvalue()
    logger.info(f"PDF summary report built: {len(pdf_bytes)} bytes, sha256={hashlib.sha256(pdf_bytes).hexdigest()}")

    buffer.seek(0)
    return StreamingResponse(
        buffer,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=Business_Summary_{generated_at.strftime('%Y%m%d')}.pdf",
            "Content-Length": str(len(pdf_bytes))
        }
    )
