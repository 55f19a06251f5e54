"""
Simulated pulse oximeter.

Implements the ReadingSource port with randomized sensor noise so the demo
and the shell can run without hardware. The engine never generates readings
itself; it only accepts completed ones.
"""

import asyncio
import random

import structlog
from pydantic import BaseModel, Field

from carecore.domain.models import CaptureTag, Reading
from carecore.services.result import Result

logger = structlog.get_logger(__name__)


class OximeterProfile(BaseModel):
    """Centre values the simulated sensor drifts around."""

    spo2: float = Field(default=98.0, ge=0.0, le=100.0)
    pulse_rate: float = Field(default=72.0, ge=0.0)
    perfusion_index: float = Field(default=3.8, ge=0.0)
    score: int = Field(default=72, ge=0, le=100)


class SimulatedOximeterSource:
    """
    Simulated acquisition window with realistic noise and dropouts.

    In production: This would read a Bluetooth oximeter over a 30 second window.
    """

    def __init__(
        self,
        source_name: str,
        profile: OximeterProfile | None = None,
        window_seconds: float = 0.0,
        dropout_rate: float = 0.0,
    ) -> None:
        self.source_name = source_name
        self.profile = profile or OximeterProfile()
        self.window_seconds = window_seconds
        self.dropout_rate = dropout_rate
        self.logger = logger.bind(source=source_name)

    async def capture(self, resident_id: str, capture_tag: CaptureTag) -> Result[Reading, Exception]:
        """
        Run one acquisition window.

        Returns:
            Result[Reading, Exception]: The completed reading, or the connection error.
        """
        try:
            await asyncio.sleep(self.window_seconds)

            if random.random() < self.dropout_rate:
                raise ConnectionError(f"{self.source_name} lost its Bluetooth connection")

            p = self.profile
            reading = Reading(
                resident_id=resident_id,
                spo2=min(100.0, max(0.0, p.spo2 + random.uniform(-0.5, 0.5))),
                pulse_rate=max(0.0, p.pulse_rate + random.uniform(-1.0, 1.0)),
                perfusion_index=max(0.0, p.perfusion_index + random.uniform(-0.1, 0.1))
                if p.perfusion_index > 0
                else 0.0,
                score=p.score,
                capture_tag=capture_tag,
            )

            self.logger.info(
                "reading_captured",
                resident_id=resident_id,
                capture_tag=capture_tag.value,
                spo2=round(reading.spo2, 1),
            )
            return Result.ok(reading)

        except Exception as e:
            self.logger.exception("reading_capture_failed", error=str(e))
            return Result.err(e)
