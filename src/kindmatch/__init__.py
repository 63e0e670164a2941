"""
kindmatch: generate a C header and a Fortran module that agree on which
native C type backs each Fortran integer and real kind.
"""

from kindmatch.driver import GenerationDriver, GenerationResult, GenerationState, generate
from kindmatch.emitter import DualFileEmitter, EmissionRecord
from kindmatch.errors import ConfigError, EmitterClosedError, KindMatchError, UnresolvableWidthError
from kindmatch.platform import PlatformConfig, load_platform, platform_from_dict

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "DualFileEmitter",
    "EmissionRecord",
    "EmitterClosedError",
    "GenerationDriver",
    "GenerationResult",
    "GenerationState",
    "KindMatchError",
    "PlatformConfig",
    "UnresolvableWidthError",
    "generate",
    "load_platform",
    "platform_from_dict",
]
