"""
日志配置
"""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """配置根日志（重复调用只更新日志级别）"""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not any(getattr(h, "_filemanager", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._filemanager = True
        root.addHandler(handler)
