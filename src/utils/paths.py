from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union


@dataclass
class Paths:
    """
    프로젝트 공통 경로 집합.

    Attributes:
        log_dir (Path): 실행 로그 저장 디렉토리 (root/log)
        data_dir (Path): 데이터 저장 디렉토리 (root/data)
        config_dir (Path): 설정 파일 디렉토리 (root/config)
        result_dir (Path): vocabulary/히스토그램 결과물 디렉토리 (root/result/bovw)
    """

    log_dir: Path
    data_dir: Path
    config_dir: Path
    result_dir: Path

    @staticmethod
    def from_root(root: Union[str, Path]) -> "Paths":
        """
        루트 경로를 기준으로 경로 집합을 생성한다.
        log/data/result 디렉토리가 없으면 자동 생성한다.

        Args:
            root (Union[str, Path]): 프로젝트 루트 경로.

        Returns:
            Paths: log/data/config/result 디렉토리를 포함한 Paths 객체.

        Note:
            - config 디렉토리는 선택 사항이므로 생성하지 않는다.
        """
        root = Path(root).resolve()

        log_dir = root / "log"
        data_dir = root / "data"
        config_dir = root / "config"
        result_dir = root / "result" / "bovw"

        log_dir.mkdir(parents=True, exist_ok=True)
        data_dir.mkdir(parents=True, exist_ok=True)
        result_dir.mkdir(parents=True, exist_ok=True)

        return Paths(
            log_dir=log_dir,
            data_dir=data_dir,
            config_dir=config_dir,
            result_dir=result_dir,
        )
