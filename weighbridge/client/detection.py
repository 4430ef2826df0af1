"""
Plate-detection feed from the entry camera.

Devices push one JSON object per message. The contract is `DetectionFrame`
(schema_version 1); older devices that send `plate`/`vehicle`/`fastag` are
accepted through aliases. A frame is only a suggestion for the registration
form; nothing here writes to the gate service.
"""
import base64
import binascii
import json
import logging
import re
import time
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as SchemaError
from websockets.exceptions import WebSocketException
from websockets.sync.client import connect

from weighbridge.core.config import settings
from weighbridge.core.errors import ValidationError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
_REGISTRATION_RE = re.compile(r"^[A-Z0-9\-]{4,15}$")
_DATA_URL_PREFIX = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,")


class DetectionFrame(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    schema_version: Literal[1] = SCHEMA_VERSION
    registration_number: str = Field(validation_alias=AliasChoices("registration_number", "plate"))
    vehicle_type: str | None = Field(default=None, validation_alias=AliasChoices("vehicle_type", "vehicle"))
    fastag_id: str | None = Field(default=None, validation_alias=AliasChoices("fastag_id", "fastag"))
    image: str | None = None
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("registration_number", mode="before")
    @classmethod
    def _normalize_registration(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("registration_number must be a string")
        reg = v.strip().upper().replace(" ", "")
        if not _REGISTRATION_RE.match(reg):
            raise ValueError("registration_number must be 4-15 characters of A-Z, 0-9 or '-'")
        return reg

    @field_validator("vehicle_type", "fastag_id", "image", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("vehicle_type", mode="after")
    @classmethod
    def _upper_type(cls, v: str | None) -> str | None:
        return v.upper() if v else v

    @field_validator("image", mode="after")
    @classmethod
    def _check_image(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            base64.b64decode(_DATA_URL_PREFIX.sub("", v), validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("image is not valid base64")
        return v

    def image_bytes(self) -> bytes | None:
        if self.image is None:
            return None
        return base64.b64decode(_DATA_URL_PREFIX.sub("", self.image))

    def to_registration_prefill(self) -> dict:
        """Advisory vehicle fields for the registration form; the operator confirms them."""
        out: dict[str, Any] = {"registration_number": self.registration_number}
        if self.vehicle_type:
            out["vehicle_type"] = self.vehicle_type
        if self.fastag_id:
            out["fastag_id"] = self.fastag_id
        if self.image:
            out["image"] = self.image
        return out


def parse_frame(raw: str | bytes | dict) -> DetectionFrame:
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ValidationError(f"Detection frame is not JSON: {e}")
    if not isinstance(raw, dict):
        raise ValidationError("Detection frame must be a JSON object")
    try:
        return DetectionFrame.model_validate(raw)
    except SchemaError as e:
        errors = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
        raise ValidationError("Malformed detection frame", errors=errors)


class DetectionFeed:
    """
    Subscription to the detection socket.

    `frames()` blocks and yields parsed frames. On connection loss it waits
    `reconnect_seconds` and connects again until `close()` is called.
    Malformed frames are logged and skipped.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        reconnect_seconds: float | None = None,
        connector: Callable[[str], Any] = connect,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.url = url or settings.detection_feed_url
        self.reconnect_seconds = (
            settings.detection_reconnect_seconds if reconnect_seconds is None else reconnect_seconds
        )
        self._connector = connector
        self._sleep = sleep
        self._closed = False
        self.connected = False
        self.latest: DetectionFrame | None = None
        self.dropped = 0

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def frames(self) -> Iterator[DetectionFrame]:
        while not self._closed:
            try:
                with self._connector(self.url) as conn:
                    self.connected = True
                    logger.info("Detection feed connected: %s", self.url)
                    for message in conn:
                        if self._closed:
                            break
                        try:
                            frame = parse_frame(message)
                        except ValidationError as e:
                            self.dropped += 1
                            logger.warning("Dropped detection frame: %s", e)
                            continue
                        self.latest = frame
                        yield frame
            except (OSError, WebSocketException) as e:
                logger.warning("Detection feed connection lost: %s", e)
            finally:
                self.connected = False

            if self._closed:
                break
            logger.info("Reconnecting to detection feed in %.1fs", self.reconnect_seconds)
            self._sleep(self.reconnect_seconds)
