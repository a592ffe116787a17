from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import cv2
import numpy as np

IMAGE_PATTERNS = ("*.jpg", "*.jpeg", "*.png", "*.bmp")


def load_color(path: str | Path) -> np.ndarray:
    """
    BGR 컬러 이미지를 로드한다.

    Args:
        path (str | Path): 이미지 파일 경로.

    Returns:
        np.ndarray: BGR 이미지 배열.

    Raises:
        FileNotFoundError: 이미지 로딩 실패 시.

    Note:
        - OpenCV는 기본적으로 BGR 채널 순서를 사용.
        - 존재하지 않는 파일이면 None을 반환하므로 예외 처리 필요.
    """
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None:
        raise FileNotFoundError(f"이미지 로드 실패: {path}")
    return img


def decode_image(buffer: bytes | bytearray | memoryview) -> np.ndarray:
    """
    메모리 상의 인코딩된 이미지 버퍼(PNG/JPEG 등)를 BGR 배열로 디코딩한다.

    Args:
        buffer (bytes | bytearray | memoryview): 인코딩된 이미지 바이트.

    Returns:
        np.ndarray: BGR 이미지 배열.

    Raises:
        ValueError: 디코딩 실패 시.
    """
    raw = np.frombuffer(buffer, dtype=np.uint8)
    img = cv2.imdecode(raw, cv2.IMREAD_COLOR) if raw.size else None
    if img is None:
        raise ValueError(f"이미지 버퍼 디코딩 실패 (size={raw.size} bytes)")
    return img


def to_gray(img: np.ndarray) -> np.ndarray:
    """
    입력 이미지가 컬러일 경우 Gray로 변환한다.

    Args:
        img (np.ndarray): BGR 또는 Gray 이미지.

    Returns:
        np.ndarray: Gray 이미지.

    """
    return img if img.ndim == 2 else cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def _json_default(obj: Any) -> Any:
    """json.dump 에서 처리하지 못하는 객체를 문자열/리스트로 변환한다."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.floating)):
        return obj.item()
    if isinstance(obj, Path):
        return str(obj)
    return str(obj)


def save_json(data: Dict[str, Any], path: str | Path) -> None:
    """dict 객체를 JSON 파일로 저장한다.

    Args:
        data (Dict[str, Any]): 저장할 데이터.
        path (str | Path): JSON 파일 경로.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True, ensure_ascii=False, default=_json_default)


def load_json(path: str | Path) -> Optional[Dict[str, Any]]:
    """JSON 파일을 불러와 dict 로 반환한다.

    Args:
        path (str | Path): 읽을 JSON 경로.

    Returns:
        Optional[Dict[str, Any]]: 파싱된 dict. 파일이 없으면 None.
    """
    path = Path(path)
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def list_images(folder: str | Path, patterns: Sequence[str] | None = None) -> List[Path]:
    """지정한 폴더 바로 아래의 이미지 파일 목록을 정렬해서 반환한다.

    Args:
        folder (str | Path): 탐색할 디렉토리.
        patterns (Sequence[str] | None): glob 패턴 목록. None이면 기본 확장자 사용.

    Returns:
        List[Path]: 이미지 경로 목록(중복 제거, 정렬).
    """
    folder = Path(folder)
    if patterns is None:
        patterns = IMAGE_PATTERNS

    found = set()
    for pattern in patterns:
        found.update(p for p in folder.glob(pattern) if p.is_file())
    return sorted(found)
