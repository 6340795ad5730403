"""OCR adapter using Tesseract for text extraction from photos."""

from __future__ import annotations

import io
from typing import Any, Dict, List, Optional, Tuple

import pytesseract
from PIL import Image, ImageOps, UnidentifiedImageError

from core.errors import RecognitionError
from core.models import RecognitionResult


def assemble_text(data: Dict[str, List[Any]]) -> str:
    """Rebuild plain text from ``image_to_data`` word boxes.

    Words on the same line are joined by spaces, lines by newlines, and
    paragraphs are separated by a blank line.
    """

    lines: Dict[Tuple[int, int, int], List[str]] = {}
    for index, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        if not word:
            continue
        key = (data["block_num"][index], data["par_num"][index], data["line_num"][index])
        lines.setdefault(key, []).append(word)

    out: List[str] = []
    previous_par = None
    for (block, par, _line), words in lines.items():
        if previous_par is not None and previous_par != (block, par):
            out.append("")
        out.append(" ".join(words))
        previous_par = (block, par)
    return "\n".join(out)


def mean_confidence(data: Dict[str, List[Any]]) -> float:
    """Average word confidence; non-word boxes report -1 and are ignored."""

    scores = []
    for word, conf in zip(data.get("text", []), data.get("conf", [])):
        try:
            value = float(conf)
        except (TypeError, ValueError):
            continue
        if value < 0 or not (word or "").strip():
            continue
        scores.append(value)
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


class TesseractRecognizer:
    """TextRecognizerPort backed by pytesseract."""

    def __init__(self, tesseract_cmd: Optional[str] = None) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def recognize(self, image: bytes, language: str) -> RecognitionResult:
        try:
            img = Image.open(io.BytesIO(image))
            img = ImageOps.exif_transpose(img)  # auto-rotate if needed
            img = img.convert("L")              # grayscale
            data = pytesseract.image_to_data(img, lang=language, output_type=pytesseract.Output.DICT)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as exc:
            raise RecognitionError(f"Tesseract failed: {exc}") from exc
        except (UnidentifiedImageError, OSError) as exc:
            raise RecognitionError(f"Cannot read image: {exc}") from exc

        return RecognitionResult(text=assemble_text(data), mean_confidence=mean_confidence(data))
