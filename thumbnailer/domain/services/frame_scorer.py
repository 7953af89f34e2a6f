from pathlib import Path
from typing import Iterable, List, Sequence, Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from thumbnailer.domain.errors import ScoreError
from thumbnailer.domain.models import DEFAULT_WEIGHTS, FrameScore, ScoreWeights

CHANNEL_MAX = 255.0


def _load_rgb(path: Path) -> np.ndarray:
    """Decode an image file into an (H, W, 3) float array."""
    with Image.open(path) as img:
        img.load()
        rgb = img.convert("RGB")
    return np.asarray(rgb, dtype=np.float64)


def analyze_pixels(pixels: np.ndarray) -> Tuple[float, float, float]:
    """
    Compute (brightness, contrast, saturation), each normalized to [0, 1].

    - brightness: mean per-pixel intensity, where intensity is the average
      of the three channels
    - saturation: mean per-pixel (max channel - min channel)
    - contrast: mean absolute deviation of intensity from the image's own
      mean brightness (needs the first pass to finish before the second)
    """
    if pixels.size == 0:
        return 0.0, 0.0, 0.0

    rgb = pixels[..., :3]
    intensity = rgb.mean(axis=-1)

    # First pass: brightness and saturation
    avg_brightness = float(intensity.mean())
    saturation = float((rgb.max(axis=-1) - rgb.min(axis=-1)).mean())

    # Second pass: contrast against the mean from the first pass
    contrast = float(np.abs(intensity - avg_brightness).mean())

    return (
        avg_brightness / CHANNEL_MAX,
        contrast / CHANNEL_MAX,
        saturation / CHANNEL_MAX,
    )


def weighted_score(
    brightness: float,
    contrast: float,
    saturation: float,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> float:
    return (
        brightness * weights.brightness
        + contrast * weights.contrast
        + saturation * weights.saturation
    )


def score_frames(
    frames: Iterable[Union[str, Path]],
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> List[FrameScore]:
    """
    Score every frame for visual appeal.

    Fails fast: the first unreadable frame raises ScoreError and no partial
    result is returned.
    """
    scores: List[FrameScore] = []
    for frame in frames:
        path = Path(frame)
        try:
            pixels = _load_rgb(path)
        except (OSError, UnidentifiedImageError, Image.DecompressionBombError, ValueError) as e:
            raise ScoreError(path, e) from e

        brightness, contrast, saturation = analyze_pixels(pixels)
        scores.append(
            FrameScore(
                file=path,
                score=weighted_score(brightness, contrast, saturation, weights),
                brightness=brightness,
                contrast=contrast,
                saturation=saturation,
            )
        )
    return scores


def select_key_frames(scores: Sequence[FrameScore], top_n: int = 10) -> List[FrameScore]:
    """
    Pick the ``top_n`` highest-scoring frames, returned in filename order.

    Membership is decided by score (descending); the returned order is by
    filename (ascending) so the animation plays in temporal order.
    """
    if top_n < 0:
        raise ValueError("top_n must be >= 0")

    ranked = sorted(scores, key=lambda s: s.score, reverse=True)
    chosen = ranked[:top_n]
    return sorted(chosen, key=lambda s: (s.file.name, str(s.file)))
