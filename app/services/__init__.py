from .report_service import (
    ReportIdAllocationError,
    generate_report_id,
    create_report,
    render_report_text,
    complete_report,
    fail_report,
    ensure_report_text,
    find_report,
    get_report_for_owner,
    list_reports,
    delete_report,
    finalize_report,
    export_payload,
    expire_stale_reports,
)

from .classifier_client import ClassifierError, ClassificationResult, classify_image

from .analysis_service import run_analysis, dispatch_analysis

__all__ = [
    # Report Services
    "ReportIdAllocationError",
    "generate_report_id",
    "create_report",
    "render_report_text",
    "complete_report",
    "fail_report",
    "ensure_report_text",
    "find_report",
    "get_report_for_owner",
    "list_reports",
    "delete_report",
    "finalize_report",
    "export_payload",
    "expire_stale_reports",
    # Classifier
    "ClassifierError",
    "ClassificationResult",
    "classify_image",
    # Analysis
    "run_analysis",
    "dispatch_analysis",
]
