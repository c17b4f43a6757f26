"""Runtime configuration for the print service.

Values come from environment variables (or a local ``.env`` file). Nested
groups use ``__`` as the delimiter, e.g. ``TAX__PST_RATE=0.07`` or
``PRINTER__DEVICE=/dev/usb/lp1``.
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TaxSettings(BaseModel):
    """Sales tax rates applied when an order carries no tax breakdown."""

    pst_rate: float = Field(0.06, ge=0)
    gst_rate: float = Field(0.05, ge=0)


class RestaurantSettings(BaseModel):
    """Restaurant details rendered verbatim on every ticket."""

    name: str = "Asian Le Restaurant"
    address: str = "3-1400 6th Ave E"
    phone: str = "306-764-7799"


class ServerSettings(BaseModel):
    """Bind address of the HTTP front door."""

    host: str = "127.0.0.1"
    port: int = 3000


class PrinterSettings(BaseModel):
    """Receipt printer device settings."""

    device: str = "/dev/usb/lp0"
    width: int = Field(48, gt=0, description="Characters per line at normal text size")
    profile: str | None = Field(None, description="python-escpos capability profile name")
    timeout_seconds: float | None = Field(30.0, gt=0, description="Upper bound for one ticket; None disables it")


class FirestoreSettings(BaseModel):
    """Firestore project and collection names."""

    project: str | None = None
    credentials_path: str | None = None
    queue_collection: str = "printQueue"
    dine_in_collection: str = "dineInOrders"
    take_out_collection: str = "takeOutOrders"


class OptionNames(BaseModel):
    """Option labels recognised by the item name rewrite rules."""

    egg_roll: str = "Egg Roll"
    spring_roll: str = "Spring Roll"
    rice: str = "Rice"
    noodles: str = "Noodles"


class Settings(BaseSettings):
    """Print service settings."""

    model_config = SettingsConfigDict(env_file=".env", env_nested_delimiter="__", extra="ignore")

    auth_token: str = "change-me"
    log_level: str = "INFO"
    log_file: str | None = None
    timezone: str = "America/Regina"
    feed_retry_delay_ms: int = Field(5000, ge=0)
    special_item: str = "#3"

    tax: TaxSettings = TaxSettings()
    restaurant: RestaurantSettings = RestaurantSettings()
    server: ServerSettings = ServerSettings()
    printer: PrinterSettings = PrinterSettings()
    firestore: FirestoreSettings = FirestoreSettings()
    option_names: OptionNames = OptionNames()


@lru_cache
def get_settings() -> Settings:
    """Return the cached process settings."""
    return Settings()
