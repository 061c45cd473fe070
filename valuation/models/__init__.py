# Import every model so Base.metadata is complete for create_all / alembic.
from valuation.models.audit_log import AuditLogRecord
from valuation.models.valuation_option import ValuationOption
from valuation.models.valuation_report import ValuationReport
from valuation.models.valuer_user import ValuerUser

__all__ = ["AuditLogRecord", "ValuationOption", "ValuationReport", "ValuerUser"]
