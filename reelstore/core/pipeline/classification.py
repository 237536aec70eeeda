"""Aspect-ratio classification of video streams."""

from .models import Classification

# Open intervals; the bounds themselves classify as OTHER.
LANDSCAPE_RATIO = (1.6, 1.9)
PORTRAIT_RATIO = (0.4, 0.6)


def classify_dimensions(width: int, height: int) -> Classification:
    """
    Classify a video by its width/height ratio.

    16:9 (1.777...) is landscape, 9:16 (0.5625) is portrait. Exact
    boundary ratios such as 1600x1000 fall through to OTHER.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid dimensions {width}x{height}")

    ratio = width / height

    if LANDSCAPE_RATIO[0] < ratio < LANDSCAPE_RATIO[1]:
        return Classification.LANDSCAPE

    if PORTRAIT_RATIO[0] < ratio < PORTRAIT_RATIO[1]:
        return Classification.PORTRAIT

    return Classification.OTHER
