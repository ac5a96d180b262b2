"""YAML configuration loading for the detect-classify runtime."""

__all__ = ["ConfigController", "get_vision_config"]


def __getattr__(name: str):
    if name == "ConfigController":
        from config.controller import ConfigController

        return ConfigController
    if name == "get_vision_config":
        from config.controller import ConfigController

        return lambda: ConfigController.get_instance().get_vision_config()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
