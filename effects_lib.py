"""
Effect dispatch: run the source tone stage, then exactly one effect engine
(or the identity pass) chosen by EffectConfig.effect_type.
"""

import logging
from types import MappingProxyType
from typing import Mapping, Optional

from dithering_lib import DitherEngine
from effect_config import EffectConfig, EffectType
from effect_engine import BaseEffectEngine, IdentityEngine
from raster_buffer import RasterBuffer
from stylize_lib import AsciiEngine, HalftoneEngine
from tone_adjuster import ToneAdjuster

__all__ = [
    'EffectDispatcher',
    'apply_effect',
]

logger = logging.getLogger(__name__)


class EffectDispatcher:
    """
    Selects and invokes one engine per call. Engines are stateless, so one
    dispatcher can serve concurrent calls as long as each call has its own
    source buffer.
    """

    def __init__(self, engines: Optional[Mapping[EffectType, BaseEffectEngine]] = None):
        table = {
            EffectType.DITHER: DitherEngine(),
            EffectType.ASCII: AsciiEngine(),
            EffectType.HALFTONE: HalftoneEngine(),
            EffectType.NONE: IdentityEngine(),
        }
        if engines:
            table.update(engines)
        self._engines = MappingProxyType(table)

    def _get_engine(self, config: EffectConfig) -> BaseEffectEngine:
        if not config.effects_enabled:
            return self._engines[EffectType.NONE]
        try:
            return self._engines[config.effect_type]
        except KeyError:
            raise ValueError(f"Unrecognized EffectType: {config.effect_type}") from None

    def apply(self, source: RasterBuffer, config: EffectConfig) -> RasterBuffer:
        engine = self._get_engine(config)
        logger.debug("Applying %s to %dx%d source", engine.name, *source.size)
        adjusted = ToneAdjuster.adjust_source(source, config.source)
        return engine.apply(adjusted, config)


_DEFAULT_DISPATCHER = EffectDispatcher()


def apply_effect(source: RasterBuffer, config: Optional[EffectConfig] = None) -> RasterBuffer:
    """Run the configured effect (defaults: Floyd-Steinberg dither) on source."""
    return _DEFAULT_DISPATCHER.apply(source, config or EffectConfig())
