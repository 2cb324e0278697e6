"""
Pydantic models for Table Grid OCR configuration.

Defines configuration schemas with validation, defaults, and
documentation for the recognition engine, output cleaning, the default
grid, image preview and logging.
"""

import math
import tempfile
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..engines import OCREngine


class LogLevel(str, Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class OCRConfig(BaseModel):
    """External recognition engine configuration."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    engine: OCREngine = Field(
        default=OCREngine.TESSERACT,
        description="Preset engine used when no custom command template is given"
    )
    command_template: Optional[str] = Field(
        default=None,
        description="Custom command with %img_in% and %txt_out% placeholders"
    )
    temp_dir: Optional[str] = Field(
        default=None,
        description="Directory for per-cell crops and text output (system temp dir if unset)"
    )
    max_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum concurrent recognition processes (CPU count if unset)"
    )
    output_suffix: str = Field(
        default=".txt",
        description="Extension an engine may append to the %txt_out% path"
    )

    @field_validator("command_template")
    @classmethod
    def validate_command_template(cls, v):
        """Reject blank templates."""
        if v is not None and not v.strip():
            raise ValueError("Command template must not be blank")
        return v

    def resolved_template(self) -> str:
        """Custom template if set, otherwise the engine preset."""
        if self.command_template:
            return self.command_template
        return OCREngine(self.engine).command_template

    def resolved_temp_dir(self) -> Path:
        return Path(self.temp_dir) if self.temp_dir else Path(tempfile.gettempdir())


class CleaningOptions(BaseModel):
    """Text normalization applied to each cell's recognition output."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    trim_whitespace: bool = Field(
        default=True,
        description="Trim leading and trailing whitespace"
    )
    trim_single_quote: bool = Field(
        default=True,
        description="Trim leading and trailing apostrophes and misread left quotes"
    )
    trim_double_quote: bool = Field(
        default=True,
        description="Trim leading and trailing double quotes"
    )
    no_newlines: bool = Field(
        default=True,
        description="Remove every newline"
    )


class GridConfig(BaseModel):
    """Initial grid and separator display settings."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    horizontals: List[float] = Field(
        default=[0.8, 0.9],
        min_length=2,
        description="Initial horizontal separator positions (normalized y, upward)"
    )
    verticals: List[float] = Field(
        default=[0.1, 0.2],
        min_length=2,
        description="Initial vertical separator positions (normalized x)"
    )
    separator_thickness: float = Field(
        default=0.005,
        ge=0.0001,
        le=0.01,
        description="Half-width of a separator for drawing and hit-testing"
    )
    separator_color: str = Field(
        default="red",
        description="Separator fill color"
    )

    @field_validator("horizontals", "verticals")
    @classmethod
    def validate_positions(cls, v):
        """Separator positions must be numbers."""
        if any(math.isnan(p) for p in v):
            raise ValueError("Separator positions must not be NaN")
        return v


class ImageConfig(BaseModel):
    """Preview rotation settings."""

    model_config = ConfigDict(extra="forbid")

    max_rotation: float = Field(
        default=math.pi / 16,
        gt=0.0,
        le=math.pi,
        description="Largest preview rotation in radians, either direction"
    )
    rotation_fill: Tuple[int, int, int, int] = Field(
        default=(255, 0, 0, 0),
        description="RGBA fill for corners uncovered by rotation"
    )

    @field_validator("rotation_fill")
    @classmethod
    def validate_fill(cls, v):
        if any(not 0 <= c <= 255 for c in v):
            raise ValueError("Fill channels must be between 0 and 255")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Base logging level"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path"
    )
    use_rich: bool = Field(
        default=True,
        description="Whether to use rich console output"
    )
    format_style: str = Field(
        default="detailed",
        pattern="^(simple|detailed|minimal)$",
        description="Logging format style"
    )


class Config(BaseModel):
    """Main configuration model for Table Grid OCR."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    ocr: OCRConfig = Field(
        default_factory=OCRConfig,
        description="Recognition engine configuration"
    )
    cleaning: CleaningOptions = Field(
        default_factory=CleaningOptions,
        description="Output cleaning options"
    )
    grid: GridConfig = Field(
        default_factory=GridConfig,
        description="Default grid configuration"
    )
    image: ImageConfig = Field(
        default_factory=ImageConfig,
        description="Image preview configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration"
    )

    version: str = Field(
        default="1.0.0",
        description="Configuration version"
    )
    description: Optional[str] = Field(
        default=None,
        description="Configuration description"
    )
