"""
Report export formats

JSON with camelCase keys, a simulated PDF descriptor and a printable HTML
page. CSV lives in csv_export.
"""

import html
import json
import pandas as pd
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel
import logging

logger = logging.getLogger(__name__)

PDF_MESSAGE = "PDF export is simulated. In production, this would generate a PDF file."

PAGE_STYLE = """
body { font-family: Arial, sans-serif; margin: 2em; color: #1f2937; }
h1 { color: #1e40af; }
h2 { margin-top: 1.5em; border-bottom: 1px solid #e5e7eb; }
table { border-collapse: collapse; width: 100%; margin-top: 0.5em; }
th, td { border: 1px solid #d1d5db; padding: 4px 8px; text-align: left; }
th { background: #f3f4f6; }
@media print { body { margin: 0; } }
"""


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def camelize(value: Any) -> Any:
    """Recursively convert dict keys from snake_case to camelCase"""
    if isinstance(value, dict):
        return {to_camel(k): camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [camelize(v) for v in value]
    return value


def _title(field: str) -> str:
    return field.replace("_", " ").title()


class ReportExporter:
    """Render generated report models for download"""

    @staticmethod
    def to_json(report: Optional[BaseModel]) -> str:
        if report is None:
            return json.dumps({"error": "Unsupported report type"}, indent=2)
        return json.dumps(camelize(report.model_dump(mode="json")), indent=2)

    @staticmethod
    def to_pdf_descriptor(report_type: str, report: Optional[BaseModel], user_id: str,
                          generated_at: datetime, date_range: Optional[Dict] = None) -> Dict:
        """
        Describe the PDF that would be produced for a report

        Returns:
            Dictionary with format, simulated flag, message, filename,
            content type, the report data and export metadata
        """
        return {
            "format": "pdf",
            "simulated": True,
            "message": PDF_MESSAGE,
            "filename": f"{report_type}_report_{generated_at:%Y%m%d_%H%M%S}.pdf",
            "content_type": "application/pdf",
            "data": report.model_dump(mode="json") if report is not None else None,
            "metadata": {
                "generated_at": generated_at.isoformat(),
                "user_id": user_id,
                "report_type": report_type,
                "date_range": date_range,
            },
        }

    @staticmethod
    def to_html(report: Optional[BaseModel]) -> str:
        """
        Printable HTML page for a report

        Scalar fields go into a summary table, lists of rows become their
        own tables and plain value lists are joined on one line.
        """
        if report is None:
            return "<html><body><p>Unsupported report type</p></body></html>"

        data = report.model_dump()
        title = html.escape(str(data.pop("report_title", "Report")))
        summary = {}
        sections = []

        for field, value in data.items():
            if isinstance(value, list):
                if value and isinstance(value[0], dict):
                    frame = pd.DataFrame(value)
                    frame.columns = [_title(c) for c in frame.columns]
                    table = frame.to_html(index=False, border=0, float_format=lambda v: f"{v:,.2f}")
                    sections.append(f"<h2>{html.escape(_title(field))}</h2>\n{table}")
                elif value:
                    summary[_title(field)] = ", ".join(str(v) for v in value)
            elif isinstance(value, dict):
                frame = pd.DataFrame([value])
                frame.columns = [_title(c) for c in frame.columns]
                sections.append(f"<h2>{html.escape(_title(field))}</h2>\n{frame.to_html(index=False, border=0)}")
            elif value is not None:
                summary[_title(field)] = f"{value:,.2f}" if isinstance(value, float) else str(value)

        summary_table = pd.DataFrame(
            {"Field": list(summary.keys()), "Value": list(summary.values())}
        ).to_html(index=False, border=0)

        body = "\n".join([f"<h1>{title}</h1>", "<h2>Summary</h2>", summary_table] + sections)
        return (
            "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n"
            f"<title>{title}</title>\n<style>{PAGE_STYLE}</style>\n</head>\n"
            f"<body>\n{body}\n</body>\n</html>\n"
        )


report_exporter = ReportExporter()
