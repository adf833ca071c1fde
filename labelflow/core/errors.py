class LabelflowError(Exception):
    pass


class StoreNotRegistered(LabelflowError, KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"No data store registered under {self.name!r}"


class ConfigError(LabelflowError):
    pass
