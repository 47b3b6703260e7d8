# pickboard/core/errors.py


class PickboardError(Exception):
    pass


class ConfigError(PickboardError):
    pass


class ScheduleError(PickboardError):
    pass


class DiscoveryError(PickboardError):
    pass


class FetchError(PickboardError):
    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class ExtractionError(PickboardError):
    pass


class PublishError(PickboardError):
    pass
