"""
Classical multidimensional scaling projecting a distance matrix onto k-dimensional coordinates by double-centering the squared distances and scaling the leading eigenvectors by the square root of their eigenvalues.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from config import settings
from engine.exceptions import DegenerateLayout, LayoutFailed
from engine.models import Coordinate

log = logging.getLogger(__name__)

NEGATIVE_CLAMP = "clamp"
NEGATIVE_RAISE = "raise"


def _as_square(D: np.ndarray) -> np.ndarray:
    arr = np.asarray(D, dtype=float)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise LayoutFailed(f"distance matrix must be square, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise LayoutFailed("distance matrix contains non-finite values")
    return arr


def double_center(D: np.ndarray) -> np.ndarray:
    n = D.shape[0]
    D2 = D * D
    C = np.eye(n) - np.full((n, n), 1.0 / n)
    B = -0.5 * C @ D2 @ C
    return (B + B.T) / 2.0


def classical_mds(
    D: np.ndarray,
    dims: Optional[int] = None,
    negative_policy: Optional[str] = None,
    tolerance: Optional[float] = None,
) -> np.ndarray:
    if dims is None:
        dims = settings.layout_dims
    if negative_policy is None:
        negative_policy = settings.layout_negative_policy
    if tolerance is None:
        tolerance = settings.layout_eigen_tolerance
    if dims < 1:
        raise ValueError("dims must be at least 1")
    if negative_policy not in (NEGATIVE_CLAMP, NEGATIVE_RAISE):
        raise ValueError(f"unknown negative eigenvalue policy: {negative_policy!r}")

    D = _as_square(D)
    n = D.shape[0]
    coords = np.zeros((n, dims), dtype=float)
    if n == 0:
        return coords

    log.debug("double centering %dx%d distance matrix", n, n)
    B = double_center(D)

    log.debug("performing eigen decomposition...")
    try:
        eig_vals, eig_vecs = np.linalg.eigh(B)
    except np.linalg.LinAlgError as exc:
        raise LayoutFailed(f"eigen decomposition failed: {exc}", cause=exc) from exc

    order = np.argsort(eig_vals)[::-1]
    take = min(dims, n)
    if take < dims:
        log.warning("only %d item(s) for a %d-dimensional layout; padding missing axes with zeros", n, dims)

    selected = eig_vals[order[:take]]
    scale = max(float(np.max(np.abs(eig_vals))), 1.0)
    negative = [i for i, lam in enumerate(selected) if lam < -tolerance * scale]
    if negative:
        message = (
            f"negative eigenvalue(s) on axis {negative}: "
            f"{[float(selected[i]) for i in negative]}"
        )
        if negative_policy == NEGATIVE_RAISE:
            raise DegenerateLayout(message, axes=tuple(negative), eigenvalues=tuple(float(selected[i]) for i in negative))
        log.warning("degenerate layout, clamping to zero: %s", message)

    for axis in range(take):
        lam = max(float(selected[axis]), 0.0)
        coords[:, axis] = eig_vecs[:, order[axis]] * np.sqrt(lam)
    return coords


def to_coordinates(coords: np.ndarray) -> List[Coordinate]:
    if coords.ndim != 2 or coords.shape[1] < 2:
        raise ValueError("coordinate matrix needs at least two columns")
    return [Coordinate(x=float(row[0]), y=float(row[1])) for row in coords]


def layout(D: np.ndarray, dims: int = 2, negative_policy: Optional[str] = None) -> List[Coordinate]:
    return to_coordinates(classical_mds(D, dims=dims, negative_policy=negative_policy))
