from dataclasses import dataclass


@dataclass(frozen=True)
class ParamErrorCode:
    code: str
    message: str


PSCAN_001_TREE_INVALID = ParamErrorCode(
    "PSCAN_001_TREE_INVALID",
    "Configuration tree has an unexpected structure.",
)
PSCAN_002_RULE_TYPE_INVALID = ParamErrorCode(
    "PSCAN_002_RULE_TYPE_INVALID",
    "Auto tag rule type is not recognized.",
)
PSCAN_003_VALUE_CONVERSION = ParamErrorCode(
    "PSCAN_003_VALUE_CONVERSION",
    "Configuration value could not be converted.",
)
PSCAN_004_KEY_PATH_INVALID = ParamErrorCode(
    "PSCAN_004_KEY_PATH_INVALID",
    "Configuration key path is invalid.",
)
PSCAN_005_STORE_IO = ParamErrorCode(
    "PSCAN_005_STORE_IO",
    "Configuration store could not be read or written.",
)


class ConfigTreeError(RuntimeError):
    def __init__(self, err: ParamErrorCode, detail: str = "") -> None:
        suffix = f" detail={detail}" if detail else ""
        super().__init__(f"{err.code}: {err.message}{suffix}")
        self.err = err
        self.detail = detail


class ConfigConversionError(ConfigTreeError):
    """Raised when a stored node or value does not have the shape a read expects."""


class KeyPathError(ConfigTreeError):
    def __init__(self, detail: str = "") -> None:
        super().__init__(PSCAN_004_KEY_PATH_INVALID, detail)


class InvalidRuleTypeError(ValueError):
    def __init__(self, value: object) -> None:
        super().__init__(f"{PSCAN_002_RULE_TYPE_INVALID.code}: {PSCAN_002_RULE_TYPE_INVALID.message} value={value!r}")
        self.err = PSCAN_002_RULE_TYPE_INVALID
        self.value = value
