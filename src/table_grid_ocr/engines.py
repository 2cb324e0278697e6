"""Recognition engine presets and command-template materialization."""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Union

logger = logging.getLogger(__name__)

IMG_IN = "%img_in%"
TXT_OUT = "%txt_out%"


class OCREngine(str, Enum):
    """Built-in recognition engines."""
    TESSERACT = "tesseract"
    CUNEIFORM = "cuneiform"

    @property
    def command_template(self) -> str:
        return ENGINE_TEMPLATES[self]


ENGINE_TEMPLATES = {
    OCREngine.TESSERACT: f"tesseract -l eng {IMG_IN} {TXT_OUT}",
    OCREngine.CUNEIFORM: f"cuneiform -l eng -f text -o {TXT_OUT}.txt {IMG_IN}",
}


def check_template(template: str) -> bool:
    """Warn about a template that lacks one of the placeholders."""
    missing = [p for p in (IMG_IN, TXT_OUT) if p not in template]
    if missing:
        logger.warning(f"Command template is missing placeholder(s) {', '.join(missing)}: {template}")
        return False
    return True


def materialize_command(
    template: str,
    image_path: Union[str, Path],
    text_path: Union[str, Path],
) -> List[str]:
    """
    Substitute the placeholders and split into program and arguments.

    Args:
        template: Command template containing ``%img_in%`` and ``%txt_out%``
        image_path: Path of the exported crop
        text_path: Path the engine should write its text to

    Returns:
        ``[program, *args]`` split on whitespace; empty for a blank template
    """
    command = template.replace(IMG_IN, str(image_path)).replace(TXT_OUT, str(text_path))
    return command.split()
