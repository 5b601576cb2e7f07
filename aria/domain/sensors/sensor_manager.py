from typing import Callable, Dict, Iterator, List, Optional
import math
import structlog
from datetime import datetime

from aria.domain.models.assistant_state import (
    SensorSnapshot, Vector3Reading, LocationReading, DeviceInfoReading
)
from aria.infrastructure.platform.sensors import SensorSource, SensorKind, Subscription

logger = structlog.get_logger(__name__)

ACCELEROMETER_INTERVAL_MS = 1000
GYROSCOPE_INTERVAL_MS = 1000
MAGNETOMETER_INTERVAL_MS = 2000
LOCATION_WATCH_INTERVAL_MS = 30000
LOCATION_WATCH_DISTANCE_M = 100
LOW_BATTERY_PERCENT = 20
HIGH_BATTERY_PERCENT = 80
STANDARD_GRAVITY = 9.81


def motion_magnitude(accelerometer: Vector3Reading) -> float:
    """Acceleration magnitude with gravity discounted.

    Platforms differ on whether samples include gravity, so the reading is
    also evaluated with standard gravity removed along its dominant axis and
    the calmer of the two interpretations wins.
    """

    x, y, z = accelerometer.x, accelerometer.y, accelerometer.z
    raw = math.sqrt(x ** 2 + y ** 2 + z ** 2)

    if abs(z) > abs(x) and abs(z) > abs(y):
        z -= math.copysign(STANDARD_GRAVITY, z)
    elif abs(y) > abs(x):
        y -= math.copysign(STANDARD_GRAVITY, y)
    else:
        x -= math.copysign(STANDARD_GRAVITY, x)

    return min(raw, math.sqrt(x ** 2 + y ** 2 + z ** 2))


def classify_motion(accelerometer: Optional[Vector3Reading]) -> str:
    """Bucket acceleration magnitude into a motion pattern"""

    if accelerometer is None:
        return "unknown"

    magnitude = motion_magnitude(accelerometer)

    if magnitude < 0.5:
        return "stationary"
    if magnitude < 2.0:
        return "walking"
    if magnitude < 5.0:
        return "jogging"
    return "intense_movement"


def classify_orientation(accelerometer: Optional[Vector3Reading]) -> str:
    """Pick the axis the gravity vector dominates"""

    if accelerometer is None:
        return "unknown"

    x, y, z = accelerometer.x, accelerometer.y, accelerometer.z

    if abs(z) > abs(x) and abs(z) > abs(y):
        return "face_up" if z > 0 else "face_down"
    elif abs(y) > abs(x):
        return "portrait" if y > 0 else "portrait_upside_down"
    else:
        return "landscape_left" if x > 0 else "landscape_right"


class SensorManager:
    """Normalizes independent platform sensor streams into one snapshot"""

    def __init__(
        self,
        source: SensorSource,
        on_data_update: Optional[Callable[[SensorSnapshot], None]] = None
    ):
        self.source = source
        self.on_data_update = on_data_update
        self.is_collecting = False
        self._snapshot = SensorSnapshot()
        self._subscriptions: Dict[str, Subscription] = {}

    async def start_collection(self) -> None:
        """Subscribe to every sensor; failures degrade only the affected stream"""

        if self.is_collecting:
            return

        logger.info("Starting sensor collection")
        self.is_collecting = True

        await self._start_accelerometer()
        self._start_motion_stream("gyroscope", SensorKind.GYROSCOPE, GYROSCOPE_INTERVAL_MS)
        self._start_motion_stream("magnetometer", SensorKind.MAGNETOMETER, MAGNETOMETER_INTERVAL_MS)
        await self._start_location_tracking()
        await self._start_device_monitoring()

        logger.info("Sensor collection active", streams=sorted(self._subscriptions))

    async def _start_accelerometer(self):
        try:
            if not await self.source.request_permission(SensorKind.MOTION):
                logger.warning("Motion permission not granted")
                return
        except Exception as e:
            logger.error("Motion permission request failed", error=str(e))
            return

        self._start_motion_stream("accelerometer", SensorKind.ACCELEROMETER, ACCELEROMETER_INTERVAL_MS)

    def _start_motion_stream(self, field: str, kind: SensorKind, interval_ms: int):
        """Subscribe a three-axis stream that owns one snapshot field"""

        def on_sample(sample: Dict[str, float]):
            setattr(self._snapshot, field, Vector3Reading(
                x=sample["x"], y=sample["y"], z=sample["z"], timestamp=datetime.now()
            ))
            self._emit_update()

        try:
            self._subscriptions[field] = self.source.subscribe(kind, on_sample, interval_ms)
        except Exception as e:
            logger.error("Sensor subscription failed", sensor=field, error=str(e))

    async def _start_location_tracking(self):
        try:
            if not await self.source.request_permission(SensorKind.LOCATION):
                logger.warning("Location permission not granted")
                return

            position = await self.source.get_current_position()
            self._snapshot.location = self._location_from_sample(position)

            try:
                address = await self.source.reverse_geocode(position["latitude"], position["longitude"])
                if address:
                    self._snapshot.location = self._snapshot.location.model_copy(
                        update={"address": address.strip()}
                    )
            except Exception as e:
                logger.info("Address lookup failed", error=str(e))

            self._subscriptions["location"] = await self.source.watch_position(
                self._on_location,
                time_interval_ms=LOCATION_WATCH_INTERVAL_MS,
                distance_interval_m=LOCATION_WATCH_DISTANCE_M
            )

            self._emit_update()
        except Exception as e:
            logger.error("Location tracking failed", error=str(e))

    def _on_location(self, sample: Dict[str, float]):
        self._snapshot.location = self._location_from_sample(sample)
        self._emit_update()

    @staticmethod
    def _location_from_sample(sample: Dict[str, float]) -> LocationReading:
        return LocationReading(
            latitude=sample["latitude"],
            longitude=sample["longitude"],
            accuracy=sample.get("accuracy") or 0,
            timestamp=datetime.now()
        )

    async def _start_device_monitoring(self):
        try:
            battery_level = await self.source.get_battery_level()
            network = await self.source.get_network_state()

            brightness = None
            try:
                brightness = await self.source.get_brightness()
            except Exception:
                logger.debug("Brightness not available on this platform")

            if network.is_connected:
                connectivity = "wifi" if network.type == "wifi" else "cellular"
            else:
                connectivity = "offline"

            self._snapshot.device_info = DeviceInfoReading(
                battery=round(battery_level * 100),
                brightness=round(brightness * 100) if brightness is not None else None,
                orientation="unknown",
                connectivity=connectivity
            )

            self._subscriptions["battery"] = self.source.add_battery_listener(self._on_battery_level)

            self._emit_update()
        except Exception as e:
            logger.error("Device monitoring failed", error=str(e))

    def _on_battery_level(self, level: float):
        if self._snapshot.device_info is None:
            return
        self._snapshot.device_info = self._snapshot.device_info.model_copy(
            update={"battery": round(level * 100)}
        )
        self._emit_update()

    def _emit_update(self):
        if not self.on_data_update:
            return
        try:
            self.on_data_update(self.get_current_data())
        except Exception as e:
            logger.error("Sensor update listener failed", error=str(e))

    def stop_collection(self) -> None:
        """Remove every listener; safe to call at any time"""

        if not self.is_collecting:
            return

        logger.info("Stopping sensor collection")
        self.is_collecting = False

        for name, subscription in list(self._subscriptions.items()):
            try:
                subscription.remove()
            except Exception as e:
                logger.error("Failed to remove subscription", sensor=name, error=str(e))
        self._subscriptions.clear()

    def get_current_data(self) -> SensorSnapshot:
        """Deep copy of the latest snapshot"""
        return self._snapshot.model_copy(deep=True)

    def analyze_motion_pattern(self) -> str:
        return classify_motion(self._snapshot.accelerometer)

    def get_device_orientation(self) -> str:
        return classify_orientation(self._snapshot.accelerometer)

    def iter_contextual_insights(self) -> Iterator[str]:
        """Human-readable statements about the current readings"""

        snapshot = self.get_current_data()

        yield f"User appears to be {classify_motion(snapshot.accelerometer)}"
        yield f"Device is {classify_orientation(snapshot.accelerometer)}"

        if snapshot.device_info:
            battery = snapshot.device_info.battery
            if battery < LOW_BATTERY_PERCENT:
                yield "Device battery is low"
            elif battery > HIGH_BATTERY_PERCENT:
                yield "Device battery is well charged"
            yield f"Connected via {snapshot.device_info.connectivity}"

        if snapshot.location:
            yield f"Location accuracy: ±{snapshot.location.accuracy}m"
            if snapshot.location.address:
                yield f"Currently at: {snapshot.location.address}"

    def get_contextual_insights(self) -> List[str]:
        return list(self.iter_contextual_insights())

    def is_user_in_context(self, kind: str) -> bool:
        """Predicate over the current readings"""

        if kind == "moving":
            return self.analyze_motion_pattern() not in ("stationary", "unknown")
        elif kind == "stationary":
            return self.analyze_motion_pattern() == "stationary"
        elif kind == "low_battery":
            device_info = self._snapshot.device_info
            battery = device_info.battery if device_info else 100
            return battery < LOW_BATTERY_PERCENT
        elif kind == "home":
            # No home location is configured anywhere yet
            return False
        return False
