from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(log_dir: Path, name: str, level: int = logging.INFO) -> logging.Logger:
    """
    콘솔 + 파일 핸들러가 붙은 logger 를 생성한다.

    Args:
        log_dir (Path): 로그 파일 저장 디렉토리.
        name (str): logger 이름. 로그 파일명 접두어로도 사용.
        level (int): 로그 레벨.

    Returns:
        logging.Logger: 설정된 logger.

    Note:
        - 같은 이름으로 여러 번 호출해도 핸들러가 중복 추가되지 않는다.
        - 로그 파일명: {name}_{YYYYmmdd_HHMMSS}.log
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    file_handler = logging.FileHandler(log_dir / f"{name}_{stamp}.log", encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger
