"""Domain modules package."""

from studio_engine.modules.audit import models as audit_models  # noqa: F401
from studio_engine.modules.billing import models as billing_models  # noqa: F401
from studio_engine.modules.booking import models as booking_models  # noqa: F401
from studio_engine.modules.customers import models as customers_models  # noqa: F401
from studio_engine.modules.reports import models as reports_models  # noqa: F401
from studio_engine.modules.teachers import models as teachers_models  # noqa: F401
