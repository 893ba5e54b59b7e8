from typing import Optional

from abreadout.config import get_settings
from abreadout.services.experiments.readout import ReadoutGenerator

readout_generator: Optional[ReadoutGenerator] = None


async def get_readout_generator() -> ReadoutGenerator:
    """Get the process-wide readout generator and its provider client"""
    global readout_generator
    if readout_generator is None:
        readout_generator = ReadoutGenerator.from_settings(get_settings())
    return readout_generator


async def close_readout_generator():
    """Close the provider client"""
    global readout_generator
    if readout_generator:
        await readout_generator.aclose()
        readout_generator = None
