"""
全局常量与可调参数
颜色调整引擎、缓存、批处理和预览线程共用
"""
import os
from pathlib import Path

# =========================================================
# 像素缓冲区
# =========================================================

# RGBA8, 行优先, 无填充
BYTES_PER_PIXEL = 4
LUT_SIZE = 256

# =========================================================
# 调整参数范围 (UI 约束)
# =========================================================

HUE_RANGE = (-180.0, 180.0)
SATURATION_RANGE = (-100.0, 100.0)
LIGHTNESS_RANGE = (-100.0, 100.0)

# 曲线默认端点 (线性直通)
IDENTITY_CURVE = ((0.0, 0.0), (1.0, 1.0))

# 曲线通道名称 -> CurveConfig 字段
CURVE_CHANNELS = ('rgb', 'r', 'g', 'b')
CURVE_CHANNEL_ALIASES = {
    'master': 'rgb',
    'rgb': 'rgb',
    'r': 'r',
    'g': 'g',
    'b': 'b',
}

# =========================================================
# 并发
# =========================================================

# 同时运行的像素处理任务数
DEFAULT_MAX_WORKERS = 4

# 小于该像素数的图片不拆分
PARALLEL_MIN_PIXELS = 256 * 256

# 预览线程空闲策略: 连续 N 次检查无请求后退出
PREVIEW_IDLE_CHECKS = 10
PREVIEW_IDLE_SLEEP = 0.1

# AdjustmentConfig 字典格式版本
CONFIG_FORMAT_VERSION = "v1"


def get_app_dir() -> Path:
    """应用数据目录 (日志等)，可通过 PDF_IMAGE_ADJUSTER_HOME 覆盖"""
    override = os.environ.get("PDF_IMAGE_ADJUSTER_HOME")
    if override:
        return Path(override)
    return Path.home() / ".pdf_image_adjuster"
