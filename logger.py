# logger.py
import logging
import os
import time
from functools import wraps
from logging.handlers import RotatingFileHandler
from typing import Optional

from config import LOG_DIR, LOG_FILE, LOG_LEVEL

ERROR_LOG_FILE = "error.log"


def setup_logger(log_dir=LOG_DIR, log_file=LOG_FILE, level=getattr(logging, LOG_LEVEL), debug=False):
    """
    初始化 SignDeck 日志：主日志与错误日志均为轮转文件，另加控制台输出。
    SIGNDECK_LOG_DIR 覆盖日志目录，SIGNDECK_DEBUG=1 打开 DEBUG（放置日志 MERGE v3 在此级别输出）。
    """
    log_dir = os.getenv("SIGNDECK_LOG_DIR", log_dir)
    os.makedirs(log_dir, exist_ok=True)
    debug = debug or os.getenv("SIGNDECK_DEBUG", "0") == "1"
    file_level = logging.DEBUG if debug else level

    logger = logging.getLogger("SignDeck")
    if logger.hasHandlers():
        logger.handlers.clear()
    logger.setLevel(file_level)
    logger.propagate = False

    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s')
    handlers = [
        (RotatingFileHandler(os.path.join(log_dir, log_file), maxBytes=5 * 1024 * 1024, backupCount=3), file_level),
        (RotatingFileHandler(os.path.join(log_dir, ERROR_LOG_FILE), maxBytes=2 * 1024 * 1024, backupCount=2), logging.ERROR),
        (logging.StreamHandler(), logging.INFO),
    ]
    for handler, handler_level in handlers:
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug(f"SignDeck logger initialized (dir={log_dir}, debug={debug})")
    return logger


logger = setup_logger(debug=False)


class ErrorTracker:
    """按类别统计签名过程中的错误与警告（如 Rotation、Stamp）。"""

    def __init__(self):
        self.error_count = 0
        self.warning_count = 0
        self.error_types = {}
        self.warning_types = {}

    def track_error(self, error_type: str, message: str, exception: Optional[Exception] = None):
        self.error_count += 1
        self.error_types[error_type] = self.error_types.get(error_type, 0) + 1
        logger.error(f"[{error_type}] {message}", exc_info=exception is not None)

    def track_warning(self, warning_type: str, message: str):
        self.warning_count += 1
        self.warning_types[warning_type] = self.warning_types.get(warning_type, 0) + 1
        logger.warning(f"[{warning_type}] {message}")

    def get_summary(self) -> dict:
        return {
            'total_errors': self.error_count,
            'total_warnings': self.warning_count,
            'error_types': self.error_types.copy(),
            'warning_types': self.warning_types.copy()
        }

    def reset(self):
        self.error_count = 0
        self.warning_count = 0
        self.error_types.clear()
        self.warning_types.clear()


error_tracker = ErrorTracker()


def track_error(error_type: str, message: str, exception: Optional[Exception] = None):
    error_tracker.track_error(error_type, message, exception)


def track_warning(warning_type: str, message: str):
    error_tracker.track_warning(warning_type, message)


def get_error_summary() -> dict:
    return error_tracker.get_summary()


def reset_error_tracking():
    error_tracker.reset()


def log_performance(operation: str, context: str = ""):
    """记录被装饰函数的耗时；异常照常抛出。"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"性能 [{context}]: {operation} 失败，耗时 {time.perf_counter() - start_time:.3f}秒，错误: {e}")
                raise
            logger.info(f"性能 [{context}]: {operation} 耗时 {time.perf_counter() - start_time:.3f}秒")
            return result
        return wrapper
    return decorator
