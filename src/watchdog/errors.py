class WatchdogError(Exception):
    """Base class for every failure the watchdog knows how to classify."""


class ConfigurationError(WatchdogError):
    pass


class NoVariantFound(ConfigurationError):
    pass


class AccountingError(WatchdogError):
    pass


class AccountingReadError(AccountingError):
    pass


class AccountingParseError(AccountingError):
    pass


class MissingStat(AccountingError):
    pass


class VolumeQueryError(WatchdogError):
    pass


class PathNotFound(VolumeQueryError):
    pass


class MetricsPublishError(WatchdogError):
    pass


# non-fatal: reported per process, the batch keeps going
class ProcessEnumerationError(WatchdogError):
    pass


class SignalDeliveryError(WatchdogError):
    pass
