import csv
import io
from datetime import datetime
from typing import List, Dict, Optional
import logging

from services.valuation import gain_loss, gain_loss_percentage

logger = logging.getLogger(__name__)

INVESTMENT_COLUMNS = [
    "Name", "Type", "Status", "Initial Amount", "Current Value",
    "Gain/Loss", "Gain/Loss %", "Purchase Date", "Broker",
]


def _money(value: float) -> str:
    return f"{value:.2f}"


class CSVExporter:
    """Render investments and reports as CSV text"""

    @staticmethod
    def _writer(buffer: io.StringIO):
        return csv.writer(buffer, lineterminator="\n")

    @staticmethod
    def _investment_row(investment: Dict) -> List[str]:
        return [
            investment["name"],
            investment["type"],
            investment["status"],
            _money(investment["initial_amount"]),
            _money(investment["current_value"]),
            _money(gain_loss(investment)),
            f"{gain_loss_percentage(investment, 2)}%",
            investment["purchase_date"].strftime("%Y-%m-%d"),
            investment.get("broker_platform") or "",
        ]

    @staticmethod
    def export_investment(investment: Dict, transactions: List[Dict], generated_at: datetime) -> str:
        """
        CSV report for one investment and its transaction history

        Example:
        Investment Report
        Generated: 2024-05-01 10:00:00 UTC

        Investment Details
        Name,Type,Status,Initial Amount,Current Value,Gain/Loss,Gain/Loss %,Purchase Date,Broker
        Apple,Stocks,Active,1000.00,1200.00,200.00,20.0%,2024-01-15,Fidelity

        Transaction History
        Date,Type,Quantity,Price Per Unit,Amount,Notes
        """
        buffer = io.StringIO()
        writer = CSVExporter._writer(buffer)

        writer.writerow(["Investment Report"])
        writer.writerow([f"Generated: {generated_at:%Y-%m-%d %H:%M:%S} UTC"])
        writer.writerow([])
        writer.writerow(["Investment Details"])
        writer.writerow(INVESTMENT_COLUMNS)
        writer.writerow(CSVExporter._investment_row(investment))
        writer.writerow([])
        writer.writerow(["Transaction History"])
        writer.writerow(["Date", "Type", "Quantity", "Price Per Unit", "Amount", "Notes"])

        for txn in sorted(transactions, key=lambda t: t["transaction_date"]):
            writer.writerow([
                txn["transaction_date"].strftime("%Y-%m-%d"),
                txn["type"],
                txn["quantity"],
                _money(txn["price_per_unit"]),
                _money(txn["amount"]),
                txn.get("notes") or "",
            ])

        return buffer.getvalue()

    @staticmethod
    def export_investments(investments: List[Dict], generated_at: datetime) -> str:
        """CSV listing of several investments with their portfolio"""
        buffer = io.StringIO()
        writer = CSVExporter._writer(buffer)

        writer.writerow(["Investments Export"])
        writer.writerow([f"Generated: {generated_at:%Y-%m-%d %H:%M:%S} UTC"])
        writer.writerow([])
        writer.writerow(INVESTMENT_COLUMNS + ["Portfolio"])
        for investment in investments:
            writer.writerow(CSVExporter._investment_row(investment) + [investment.get("portfolio_name") or ""])

        logger.info(f"Exported {len(investments)} investments to CSV")
        return buffer.getvalue()

    @staticmethod
    def export_report(report_type: str, report: Optional[object]) -> str:
        """
        CSV rendering of a performance or transaction history report

        Args:
            report_type: 'performance' or 'transactions' (case-insensitive)
            report: The generated report, or None for unsupported types

        Returns:
            CSV text; unsupported types produce a single explanatory line
        """
        buffer = io.StringIO()
        writer = CSVExporter._writer(buffer)
        kind = report_type.lower()

        if kind == "performance" and report is not None:
            writer.writerow(["Performance Summary Report"])
            writer.writerow([f"Generated: {report.generated_at:%Y-%m-%d %H:%M:%S}"])
            writer.writerow([f"Period: {report.period_start} to {report.period_end}"])
            writer.writerow([])
            writer.writerow(["Overall Performance"])
            writer.writerow(["Total Invested", "Current Value", "Gain/Loss", "Gain/Loss %"])
            writer.writerow([
                _money(report.total_invested),
                _money(report.current_value),
                _money(report.total_gain_loss),
                f"{report.total_gain_loss_percentage}%",
            ])
            writer.writerow([])
            writer.writerow(["Top Performers"])
            writer.writerow(["Name", "Type", "Initial", "Current", "Gain/Loss", "Gain/Loss %"])
            for item in report.top_performers:
                writer.writerow([
                    item.name, item.type, _money(item.initial_amount), _money(item.current_value),
                    _money(item.gain_loss), f"{item.gain_loss_percentage}%",
                ])
        elif kind == "transactions" and report is not None:
            writer.writerow(["Transaction History Report"])
            writer.writerow([f"Generated: {report.generated_at:%Y-%m-%d %H:%M:%S}"])
            writer.writerow([f"Period: {report.period_start} to {report.period_end}"])
            writer.writerow([])
            writer.writerow(["Date", "Investment", "Type", "Transaction Type", "Quantity", "Price", "Amount", "Notes"])
            for txn in report.transactions:
                writer.writerow([
                    txn.date.strftime("%Y-%m-%d"), txn.investment_name, txn.investment_type,
                    txn.transaction_type, txn.quantity, _money(txn.price_per_unit),
                    _money(txn.amount), txn.notes or "",
                ])
        else:
            writer.writerow(["Unsupported report type for CSV export"])

        return buffer.getvalue()


csv_exporter = CSVExporter()
