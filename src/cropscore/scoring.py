"""Candidate scoring against the feature buffer.

The feature buffer is sampled on a coarse grid (every ``score_down_sample``
pixels). Each sample is weighted by its importance relative to the candidate:
peaked at the crop centre, boosted on the thirds lines, pushed down near the
crop border and fixed at ``outside_importance`` outside the crop.
"""

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from cropscore.config import Config
from cropscore.features import DETAIL_CHANNEL, SATURATION_CHANNEL, SKIN_CHANNEL
from cropscore.geometry import Crop, Rectangle, Score

THIRDS_BONUS = 1.2


@dataclass(frozen=True)
class SampleGrid:
    """Feature values at the sampled positions, normalised to [0, 1]."""

    xs: np.ndarray
    ys: np.ndarray
    skin: np.ndarray
    detail: np.ndarray
    saturation: np.ndarray


def sample_grid(features: np.ndarray, stride: int) -> SampleGrid:
    h, w = features.shape[:2]
    xs = np.arange(0, w - stride + 1, stride)
    ys = np.arange(0, h - stride + 1, stride)
    sampled = features[np.ix_(ys, xs)].astype(np.float64) / 255.0
    return SampleGrid(
        xs=xs,
        ys=ys,
        skin=sampled[:, :, SKIN_CHANNEL],
        detail=sampled[:, :, DETAIL_CHANNEL],
        saturation=sampled[:, :, SATURATION_CHANNEL],
    )


def thirds(x: np.ndarray) -> np.ndarray:
    """Peaks at 1/3 and 2/3 distance from the crop centre."""
    x = (np.mod(x - (1.0 / 3.0) + 1.0, 2.0) * 0.5 - 0.5) * 16.0
    return np.maximum(1.0 - x * x, 0.0)


def importance_map(crop: Rectangle, xs: np.ndarray, ys: np.ndarray, config: Config) -> np.ndarray:
    """Importance of every (y, x) sample for the given crop, shape (len(ys), len(xs))."""
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    result = np.full((ys.size, xs.size), config.outside_importance, dtype=np.float64)
    if crop.is_empty():
        return result

    inside_x = (xs >= crop.min_x) & (xs < crop.max_x)
    inside_y = (ys >= crop.min_y) & (ys < crop.max_y)

    px = np.abs(0.5 - (xs - crop.min_x) / crop.width) * 2.0
    py = np.abs(0.5 - (ys - crop.min_y) / crop.height) * 2.0

    dx = np.maximum(px - 1.0 + config.edge_radius, 0.0)
    dy = np.maximum(py - 1.0 + config.edge_radius, 0.0)
    d = (dx[np.newaxis, :] ** 2 + dy[:, np.newaxis] ** 2) * config.edge_weight

    s = 1.41 - np.sqrt(px[np.newaxis, :] ** 2 + py[:, np.newaxis] ** 2)
    if config.rule_of_thirds:
        s = s + (np.maximum(0.0, s + d + 0.5) * THIRDS_BONUS) * (
            thirds(px)[np.newaxis, :] + thirds(py)[:, np.newaxis]
        )

    inside = inside_y[:, np.newaxis] & inside_x[np.newaxis, :]
    return np.where(inside, s + d, result)


def face_score(crop: Rectangle, faces: Iterable[Rectangle]) -> float:
    """Fraction of the crop covered by faces lying entirely inside it."""
    area = crop.area
    if area <= 0:
        return 0.0
    return sum(face.area / area for face in faces if crop.contains(face))


def total_score(score: Score, crop: Rectangle, config: Config) -> float:
    area = crop.area
    if area <= 0:
        return float("-inf")
    weighted = (
        score.detail * config.detail_weight
        + score.skin * config.skin_weight
        + score.saturation * config.saturation_weight
    )
    return weighted / area + score.face


def score_crop(
    grid: SampleGrid,
    crop: Rectangle,
    config: Config,
    faces: Sequence[Rectangle] = (),
) -> Score:
    imp = importance_map(crop, grid.xs, grid.ys, config)
    det = grid.detail

    score = Score(
        skin=float(np.sum(grid.skin * (det + config.skin_bias) * imp)),
        detail=float(np.sum(det * imp)),
        saturation=float(np.sum(grid.saturation * (det + config.saturation_bias) * imp)),
    )
    if config.face_detect_enabled:
        score.face = face_score(crop, faces)
    score.total = total_score(score, crop, config)
    return score


def score_crops(
    features: np.ndarray,
    rects: Iterable[Rectangle],
    config: Config,
    faces: Sequence[Rectangle] = (),
) -> list[Crop]:
    """Score every rectangle against one feature buffer, preserving order."""
    grid = sample_grid(features, config.score_down_sample)
    return [Crop(rect=rect, score=score_crop(grid, rect, config, faces)) for rect in rects]
