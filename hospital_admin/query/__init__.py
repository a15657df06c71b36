from .facade import UNKNOWN_LABEL, DashboardSummary, QueryFacade

__all__ = ["DashboardSummary", "QueryFacade", "UNKNOWN_LABEL"]
