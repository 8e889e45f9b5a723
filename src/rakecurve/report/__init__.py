"""Report feature: pipeline service and payload schemas."""

from .schemas import HandPayload, ReportPayload, ReportRequest, SessionPayload
from .service import RakeReport, build_report, build_report_async, build_report_from_request

__all__ = [
    "HandPayload",
    "RakeReport",
    "ReportPayload",
    "ReportRequest",
    "SessionPayload",
    "build_report",
    "build_report_async",
    "build_report_from_request",
]
