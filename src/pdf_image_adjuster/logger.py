"""
统一的日志处理模块
使用 loguru 提供一致的日志接口，支持日志文件输出
"""
from typing import Optional
from loguru import logger
import sys
from pathlib import Path

from pdf_image_adjuster.config import get_app_dir


def get_log_file_path() -> str:
    """获取日志文件路径"""
    log_dir = get_app_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return str(log_dir / "pdf_image_adjuster.log")


def setup_logging(console_level: str = "INFO", log_file: Optional[str] = None, file_level: str = "DEBUG") -> None:
    """
    配置全局 loguru logger，由宿主程序在启动时调用

    Args:
        console_level: 控制台日志级别
        log_file: 日志文件路径，None 时使用应用目录下的默认文件
        file_level: 文件日志级别
    """
    logger.remove()  # 移除默认处理器

    # 添加控制台输出（仅在有stderr时，如非GUI模式）
    if sys.stderr is not None:
        logger.add(
            sys.stderr,
            format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
            level=console_level,
            colorize=True
        )

    path = log_file or get_log_file_path()
    Path(path).parent.mkdir(parents=True, exist_ok=True)

    # 添加文件输出（自动轮转，保留最近7天）
    logger.add(
        path,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
        level=file_level,
        rotation="1 day",
        retention="7 days",
        compression="zip",
        encoding="utf-8"
    )


class LoguruHandler:
    """
    Loguru 日志处理器包装类
    为一次批处理（或一张图片）的所有日志加上统一前缀
    """

    def __init__(self, file_id: Optional[str] = None):
        self.file_id = file_id

    def _format_message(self, message: str) -> str:
        if self.file_id:
            return f"[{self.file_id}] {message}"
        return message

    def _output(self, message: str, level: str = "INFO"):
        # depth=2 让日志记录调用方的位置而不是本类
        logger.opt(depth=2).log(level, self._format_message(message))

    def log(self, message: str, level: str = "INFO"):
        self._output(message, level.upper())

    def info(self, message: str):
        self._output(message, "INFO")

    def error(self, message: str):
        self._output(message, "ERROR")

    def success(self, message: str):
        self._output(message, "SUCCESS")

    def warning(self, message: str):
        self._output(message, "WARNING")

    def debug(self, message: str):
        self._output(message, "DEBUG")


def create_logger(file_id: Optional[str] = None) -> LoguruHandler:
    """
    工厂函数：创建日志处理器实例

    Args:
        file_id: 标识符，例如 "batch:all_pages"

    Returns:
        LoguruHandler 实例
    """
    return LoguruHandler(file_id)
