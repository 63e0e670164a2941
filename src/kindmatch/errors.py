from __future__ import annotations


class KindMatchError(Exception):
    pass


class ConfigError(KindMatchError):
    pass


class UnresolvableWidthError(KindMatchError):
    pass


class EmitterClosedError(KindMatchError):
    pass
