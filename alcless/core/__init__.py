from alcless.core.constants import LifecycleStep as LifecycleStep
from alcless.core.exceptions import (
    AlclessError as AlclessError,
    AuthenticationError as AuthenticationError,
    ProvisioningError as ProvisioningError,
    ValidationError as ValidationError,
)
from alcless.core.naming import derive_account_name as derive_account_name
from alcless.core.types import (
    BatchResult as BatchResult,
    SessionState as SessionState,
    ValidationReport as ValidationReport,
)
from alcless.core.utils import strip_ansi as strip_ansi
