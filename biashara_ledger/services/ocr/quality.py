"""
Image Quality Pre-check

DESIGN DECISION: We do NOT send obviously unreadable photos to OCR.
Simple Pillow heuristics are used rather than ML-based assessment because:
1. Lower latency
2. More predictable behavior
3. No additional API costs
"""

from enum import Enum
from io import BytesIO

from PIL import Image, UnidentifiedImageError


class ImageQuality(str, Enum):
    """Image quality assessment result."""
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"
    UNUSABLE = "unusable"


def assess_image_quality(image_bytes: bytes) -> tuple[ImageQuality, float, list[str]]:
    """
    Assess receipt photo quality.

    Returns: (quality_enum, quality_score, list_of_issues)
    """
    issues = []
    score = 1.0

    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        return ImageQuality.UNUSABLE, 0.0, [f"Could not open image: {e}"]

    width, height = img.size
    if width == 0 or height == 0:
        return ImageQuality.UNUSABLE, 0.0, ["Image has no pixels"]

    # Resolution
    min_dimension = min(width, height)
    if min_dimension < 300:
        issues.append("Image resolution too low (minimum 300px on smallest side)")
        score -= 0.4
    elif min_dimension < 500:
        issues.append("Image resolution is low, text may be hard to read")
        score -= 0.2

    # Long receipts are fine; extreme strips usually mean a bad crop
    aspect = max(width, height) / min_dimension
    if aspect > 6:
        issues.append("Unusual aspect ratio - image may be cropped incorrectly")
        score -= 0.2

    gray = img if img.mode == "L" else img.convert("L")
    histogram = gray.histogram()
    total_pixels = sum(histogram)

    dark_pixels = sum(histogram[:50]) / total_pixels
    if dark_pixels > 0.7:
        issues.append("Image is very dark - please take photo in better lighting")
        score -= 0.3

    bright_pixels = sum(histogram[200:]) / total_pixels
    if bright_pixels > 0.7:
        issues.append("Image is overexposed - please reduce lighting or angle")
        score -= 0.3

    # Range of pixel values holding the middle 90% of pixels
    cumsum = 0
    low_percentile = None
    high_percentile = 255
    for i, count in enumerate(histogram):
        cumsum += count
        if low_percentile is None and cumsum >= total_pixels * 0.05:
            low_percentile = i
        if cumsum >= total_pixels * 0.95:
            high_percentile = i
            break

    if high_percentile - (low_percentile or 0) < 50:
        issues.append("Image has very low contrast - text may be hard to read")
        score -= 0.25

    score = max(0.0, min(1.0, score))

    if score >= 0.7:
        quality = ImageQuality.GOOD
    elif score >= 0.5:
        quality = ImageQuality.ACCEPTABLE
    elif score >= 0.3:
        quality = ImageQuality.POOR
    else:
        quality = ImageQuality.UNUSABLE

    return quality, score, issues
