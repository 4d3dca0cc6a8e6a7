from .report_presenter import ReportPresenter

__all__ = ["ReportPresenter"]
