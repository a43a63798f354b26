import concurrent.futures
from typing import Optional, Union

import numpy as np
from loguru import logger

from pdf_image_adjuster.config import BYTES_PER_PIXEL, DEFAULT_MAX_WORKERS, PARALLEL_MIN_PIXELS
from pdf_image_adjuster.curves import identity_lut
from pdf_image_adjuster.errors import InvalidBufferError
from pdf_image_adjuster.math_ops import apply_adjustments_inplace
from pdf_image_adjuster.pipeline.request import HslAdjustment

PixelsLike = Union[bytes, bytearray, memoryview, np.ndarray]


# =========================================================
# 缓冲区辅助函数
# =========================================================

def expected_length(width: int, height: int) -> int:
    return width * height * BYTES_PER_PIXEL


def validate_buffer(pixels: PixelsLike, width: int, height: int) -> None:
    """长度必须严格等于 width*height*4"""
    length = len(pixels) if not isinstance(pixels, np.ndarray) else pixels.nbytes
    if width < 0 or height < 0 or length != expected_length(width, height):
        raise InvalidBufferError(length, width, height)


def as_pixel_array(pixels: PixelsLike) -> np.ndarray:
    """
    转换为扁平的 uint8 数组。
    bytes 输入得到只读视图 (零拷贝)，调用方需自行 copy 后再修改。
    """
    if isinstance(pixels, np.ndarray):
        return np.ascontiguousarray(pixels).reshape(-1).view(np.uint8)
    return np.frombuffer(pixels, dtype=np.uint8)


def _as_lut(lut: Optional[np.ndarray]) -> np.ndarray:
    if lut is None:
        return identity_lut()
    arr = np.ascontiguousarray(lut, dtype=np.uint8)
    if arr.shape != (256,):
        raise ValueError(f"LUT must have 256 entries, got shape {arr.shape}")
    return arr


# =========================================================
# 颜色变换 (HSL + 曲线)
# =========================================================

def apply_color_adjustments(
    pixels: PixelsLike,
    width: int,
    height: int,
    hsl: HslAdjustment,
    lut_master: Optional[np.ndarray] = None,
    lut_r: Optional[np.ndarray] = None,
    lut_g: Optional[np.ndarray] = None,
    lut_b: Optional[np.ndarray] = None,
    max_workers: int = 1,
) -> bytes:
    """
    对 RGBA8 缓冲区应用 HSL 增量和曲线，返回新的 bytes，输入保持不变。

    width/height 仅用于日志；不完整的尾部字节原样复制，空缓冲区返回空结果。
    max_workers > 1 时按像素边界分块并行（numba 核函数释放 GIL）。
    """
    src = as_pixel_array(pixels)
    out = src.copy()

    n_pixels = out.size // BYTES_PER_PIXEL
    if n_pixels == 0:
        return out.tobytes()

    luts = (_as_lut(lut_master), _as_lut(lut_r), _as_lut(lut_g), _as_lut(lut_b))
    apply_hsl = not hsl.is_identity()
    body = out[:n_pixels * BYTES_PER_PIXEL]

    def run(chunk: np.ndarray) -> None:
        apply_adjustments_inplace(
            chunk,
            float(hsl.hue),
            float(hsl.saturation),
            float(hsl.lightness),
            apply_hsl,
            *luts
        )

    workers = max(1, int(max_workers))
    if workers == 1 or n_pixels < PARALLEL_MIN_PIXELS:
        run(body)
    else:
        # 按像素对齐拆分，各块是同一输出数组的互不重叠视图
        pixel_view = body.reshape(n_pixels, BYTES_PER_PIXEL)
        chunks = [c.reshape(-1) for c in np.array_split(pixel_view, workers) if c.size]
        logger.debug(f"[Transform] {width}x{height} split into {len(chunks)} chunks")
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            # list() 让核函数里的异常在这里抛出
            list(executor.map(run, chunks))

    return out.tobytes()


def apply_config_with_luts(pixels: PixelsLike, width: int, height: int, hsl: HslAdjustment, luts,
                           max_workers: int = DEFAULT_MAX_WORKERS) -> bytes:
    """luts 为 (master, r, g, b) 元组"""
    lut_master, lut_r, lut_g, lut_b = luts
    return apply_color_adjustments(pixels, width, height, hsl, lut_master, lut_r, lut_g, lut_b,
                                   max_workers=max_workers)
