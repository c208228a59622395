from .errors import ValidationError, format_errors  # noqa
from .numeric_field import NumericFieldValidator  # noqa
from .custom import CustomValidators  # noqa
from .schema import SchemaLoader, Validator  # noqa
