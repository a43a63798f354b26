"""
曲线处理器
使用单调三次 Hermite 插值 (Fritsch-Carlson 切线) 把稀疏控制点转换为 256 项查找表
"""
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from pdf_image_adjuster.config import LUT_SIZE
from pdf_image_adjuster.pipeline.request import CurveConfig, CurvePoint


def identity_lut() -> np.ndarray:
    """线性直通的查找表: lut[i] == i"""
    return np.arange(LUT_SIZE, dtype=np.uint8)


def normalize_points(points: Iterable[CurvePoint]) -> List[Tuple[float, float]]:
    """
    补齐端点并按 x 排序。
    仅在缺失时补 (0,0) / (1,1)，调用方给出的端点值不会被覆盖。
    x 相同的点保持输入顺序 (稳定排序)，不做去重。
    """
    pts = [(float(p.x), float(p.y)) for p in points]

    if not pts or min(x for x, _ in pts) > 0.0:
        pts.append((0.0, 0.0))
    if max(x for x, _ in pts) < 1.0:
        pts.append((1.0, 1.0))

    return sorted(pts, key=lambda p: p[0])


def compute_tangents(xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """
    计算单调三次插值的切线（Fritsch-Carlson 方法）
    自动计算每个点的切线，使曲线平滑且不产生过冲
    """
    n = xs.shape[0]
    tangents = np.zeros(n, dtype=np.float64)
    if n < 2:
        return tangents

    dx = np.diff(xs)
    dy = np.diff(ys)
    # 零宽度区间斜率记为 0
    deltas = np.divide(dy, dx, out=np.zeros_like(dy), where=dx > 0)

    tangents[0] = deltas[0]
    tangents[-1] = deltas[-1]

    for i in range(1, n - 1):
        d0 = deltas[i - 1]
        d1 = deltas[i]

        # 斜率符号不同或任一为 0，切线为 0（避免过冲）
        if d0 * d1 <= 0:
            continue

        # 以区间宽度加权的调和平均
        dx0 = dx[i - 1]
        dx1 = dx[i]
        common = dx0 + dx1
        tangents[i] = (3.0 * common) / ((common + dx1) / d0 + (common + dx0) / d1)

    return tangents


def evaluate_hermite(xs: np.ndarray, ys: np.ndarray, tangents: np.ndarray, samples: np.ndarray) -> np.ndarray:
    """在 samples 处求三次 Hermite 插值"""
    n = xs.shape[0]
    # 区间 j 满足 xs[j] <= x <= xs[j+1]，恰好落在节点上时取左侧区间
    seg = np.searchsorted(xs, samples, side='left') - 1
    seg = np.clip(seg, 0, n - 2)

    x0 = xs[seg]
    x1 = xs[seg + 1]
    y0 = ys[seg]
    y1 = ys[seg + 1]
    m0 = tangents[seg]
    m1 = tangents[seg + 1]

    dx = x1 - x0
    degenerate = dx == 0
    safe_dx = np.where(degenerate, 1.0, dx)

    t = (samples - x0) / safe_dx
    t2 = t * t
    t3 = t2 * t

    # Hermite 基函数
    h00 = 2.0 * t3 - 3.0 * t2 + 1.0
    h10 = t3 - 2.0 * t2 + t
    h01 = -2.0 * t3 + 3.0 * t2
    h11 = t3 - t2

    y = h00 * y0 + h10 * dx * m0 + h01 * y1 + h11 * dx * m1
    return np.where(degenerate, y0, y)


def generate_lut(points: Sequence[CurvePoint]) -> np.ndarray:
    """
    生成查找表（LUT）
    纯函数：相同输入总是得到逐字节相同的结果
    """
    pts = normalize_points(points)
    if len(pts) < 2:
        return identity_lut()

    xs = np.array([p[0] for p in pts], dtype=np.float64)
    ys = np.array([p[1] for p in pts], dtype=np.float64)
    tangents = compute_tangents(xs, ys)

    samples = np.arange(LUT_SIZE, dtype=np.float64) / (LUT_SIZE - 1)
    y = evaluate_hermite(xs, ys, tangents, samples)

    return np.clip(np.floor(y * 255.0 + 0.5), 0, 255).astype(np.uint8)


def generate_luts(curves: CurveConfig) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """一次生成 (master, r, g, b) 四张查找表"""
    return (
        generate_lut(curves.rgb),
        generate_lut(curves.r),
        generate_lut(curves.g),
        generate_lut(curves.b),
    )
