# File: parking_reports/config.py
"""
Configuration for the Booking Report Engine

1. AppConfig - static application constants (name, version, GUI palette, fonts)
2. ReportSettings - validated, overridable report/export settings

ReportSettings can be loaded from a YAML file; every key is optional and
falls back to the defaults below.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Theme(Enum):
    """Application themes"""
    LIGHT = "light"
    DARK = "dark"


class AppConfig:
    """Application configuration"""
    APP_NAME = "EazyParking Reports"
    VERSION = "1.0.0"
    COMPANY = "EazyParking"

    # Window settings
    DEFAULT_WIDTH = 1200
    DEFAULT_HEIGHT = 720
    MIN_WIDTH = 900
    MIN_HEIGHT = 540

    # Colors
    COLORS = {
        Theme.LIGHT: {
            "bg": "#f0f0f0",
            "fg": "#333333",
            "primary": "#3498db",
            "success": "#28a745",
            "danger": "#dc3545",
            "text_muted": "#6c757d"
        },
        Theme.DARK: {
            "bg": "#2b2b2b",
            "fg": "#ffffff",
            "primary": "#0d6efd",
            "success": "#198754",
            "danger": "#dc3545",
            "text_muted": "#adb5bd"
        }
    }

    # Fonts
    FONTS = {
        "title": ("Segoe UI", 16, "bold"),
        "body": ("Segoe UI", 10),
        "small": ("Segoe UI", 9),
    }


# RGB colours used in generated documents
RGB = Tuple[int, int, int]

PDF_COLORS: Dict[str, RGB] = {
    "admin_header": (52, 152, 219),
    "ongoing": (59, 130, 246),
    "upcoming": (79, 70, 229),
    "past": (124, 58, 237),
    "admin_stripe": (240, 240, 240),
    "customer_stripe": (245, 247, 250),
    "invoice_band": (245, 245, 245),
    "invoice_table": (22, 160, 133),
    "paid_stamp": (76, 175, 80),
}


class ReportSettings(BaseModel):
    """
    Settings for fetching bookings and rendering exports
    """
    model_config = ConfigDict(validate_assignment=True)

    # Backend
    backend_url: Optional[str] = Field(default=None, description="Base URL of the bookings API; None runs on demo data")
    user_report_path: str = "/api/user/report"
    admin_report_path: str = "/api/admin/generateReport"
    api_token: Optional[str] = None
    request_timeout: float = Field(default=10.0, gt=0)
    max_retries: int = Field(default=3, ge=0, le=10)

    # Branding
    brand_name: str = "EazyParking"
    support_email: str = "support@eazyparking.tech"
    website: str = "www.eazyparking.tech"
    admin_report_title: str = "Booking Report"
    customer_report_title: str = "Parking Bookings Report"

    # Views
    admin_page_size: int = Field(default=10, ge=1, le=100)
    customer_page_size: int = Field(default=5, ge=1, le=100)

    # Formatting
    timezone: str = "UTC"
    datetime_format: str = "%b %d, %Y %I:%M %p"
    date_format: str = "%Y-%m-%d"
    currency_symbol: str = "Rs."

    # Output
    output_dir: str = "exports"
    pdf_compression: bool = True
    pdf_invariant: bool = False

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator('backend_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        if v is None or not v.strip():
            return None
        return v.rstrip('/')

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def footer_title(self) -> str:
        return f"{self.brand_name} {self.admin_report_title}"

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'ReportSettings':
        """Load settings from a YAML mapping; missing keys keep their defaults"""
        with open(path, 'r', encoding='utf-8') as f:
            try:
                data: Any = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Settings file {path} is not valid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")
        return cls.model_validate(data)
