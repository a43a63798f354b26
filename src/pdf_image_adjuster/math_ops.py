from numba import njit
import numpy as np

# =========================================================
# Numba JIT Kernels (In-Place / 无内存分配)
# =========================================================
# 所有像素级计算使用 float32。
# 输入为扁平的 RGBA8 uint8 数组 (len = n_pixels * 4)，Alpha 通道从不修改。

F0 = np.float32(0.0)
F1 = np.float32(1.0)
F2 = np.float32(2.0)
F6 = np.float32(6.0)
F100 = np.float32(100.0)
F255 = np.float32(255.0)
F360 = np.float32(360.0)
HALF = np.float32(0.5)
ONE_THIRD = np.float32(1.0 / 3.0)
ONE_SIXTH = np.float32(1.0 / 6.0)
TWO_THIRDS = np.float32(2.0 / 3.0)


@njit(cache=True, nogil=True)
def to_byte(value):
    """round-then-clamp, 不截断"""
    v = np.floor(value * F255 + HALF)
    if v < 0.0:
        return 0
    if v > 255.0:
        return 255
    return int(v)


@njit(cache=True, nogil=True)
def rgb_to_hsl(r, g, b):
    """
    8-bit RGB -> (H 度 [0,360), S 百分比 [0,100], L 百分比 [0,100])
    """
    rf = np.float32(r) / F255
    gf = np.float32(g) / F255
    bf = np.float32(b) / F255

    mx = max(rf, gf, bf)
    mn = min(rf, gf, bf)
    delta = mx - mn

    l = (mx + mn) / F2

    if delta == F0:
        return F0, F0, l * F100

    if l < HALF:
        s = delta / (mx + mn)
    else:
        s = delta / (F2 - mx - mn)

    if mx == rf:
        h = (gf - bf) / delta
        if gf < bf:
            h += F6
    elif mx == gf:
        h = (bf - rf) / delta + F2
    else:
        h = (rf - gf) / delta + np.float32(4.0)

    h = h / F6 * F360
    if h >= F360:
        h -= F360
    return h, s * F100, l * F100


@njit(cache=True, nogil=True)
def hue_to_rgb(p, q, t):
    if t < F0:
        t += F1
    if t > F1:
        t -= F1

    if t < ONE_SIXTH:
        return p + (q - p) * F6 * t
    if t < HALF:
        return q
    if t < TWO_THIRDS:
        return p + (q - p) * (TWO_THIRDS - t) * F6
    return p


@njit(cache=True, nogil=True)
def hsl_to_rgb(h, s, l):
    """(H 度, S 百分比, L 百分比) -> 8-bit RGB"""
    h_norm = np.float32(h) / F360
    s_norm = np.float32(s) / F100
    l_norm = np.float32(l) / F100

    if s_norm == F0:
        gray = to_byte(l_norm)
        return gray, gray, gray

    if l_norm < HALF:
        q = l_norm * (F1 + s_norm)
    else:
        q = l_norm + s_norm - l_norm * s_norm
    p = F2 * l_norm - q

    r = to_byte(hue_to_rgb(p, q, h_norm + ONE_THIRD))
    g = to_byte(hue_to_rgb(p, q, h_norm))
    b = to_byte(hue_to_rgb(p, q, h_norm - ONE_THIRD))
    return r, g, b


@njit(cache=True, nogil=True)
def apply_hsl_delta(h, s, l, hue, saturation, lightness):
    new_h = (h + np.float32(hue)) % F360  # Python 取模语义，结果非负
    new_s = s + np.float32(saturation)
    new_l = l + np.float32(lightness)

    if new_s < F0:
        new_s = F0
    elif new_s > F100:
        new_s = F100

    if new_l < F0:
        new_l = F0
    elif new_l > F100:
        new_l = F100
    return new_h, new_s, new_l


@njit(cache=True, nogil=True)
def apply_adjustments_inplace(data, hue, saturation, lightness, apply_hsl,
                              lut_master, lut_r, lut_g, lut_b):
    """
    对扁平 RGBA8 数组逐像素执行: RGB -> HSL -> 增量 -> RGB -> 主曲线 -> 通道曲线
    apply_hsl=False 时跳过 HSL 往返，保证恒等配置逐字节不变
    """
    n_pixels = data.shape[0] // 4

    for i in range(n_pixels):
        base = i * 4
        r = np.int64(data[base])
        g = np.int64(data[base + 1])
        b = np.int64(data[base + 2])

        if apply_hsl:
            h, s, l = rgb_to_hsl(r, g, b)
            h, s, l = apply_hsl_delta(h, s, l, hue, saturation, lightness)
            r, g, b = hsl_to_rgb(h, s, l)

        # 先主曲线，再通道曲线
        data[base] = lut_r[lut_master[r]]
        data[base + 1] = lut_g[lut_master[g]]
        data[base + 2] = lut_b[lut_master[b]]
        # data[base + 3] (Alpha) 保持不变


def warmup():
    """在后台线程预编译所有核函数，避免首次调整时卡顿"""
    data = np.zeros(8, dtype=np.uint8)
    lut = np.arange(256, dtype=np.uint8)
    apply_adjustments_inplace(data, 10.0, 5.0, -5.0, True, lut, lut, lut, lut)
    rgb_to_hsl(255, 0, 0)
    hsl_to_rgb(120.0, 50.0, 50.0)
