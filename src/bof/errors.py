"""
BoVW 학습/변환 과정에서 사용하는 예외 클래스 모음.

- 설정 오류(weights 길이 불일치)와 데이터 부족 오류를 구분한다.
- 기존 코드와의 호환을 위해 ValueError / RuntimeError 를 함께 상속한다.
"""

from __future__ import annotations


class BoVWError(Exception):
    """Bag-of-Visual-Words 관련 예외의 공통 부모 클래스."""


class DimensionMismatchError(BoVWError, ValueError):
    """입력 길이와 weights 길이가 서로 맞지 않을 때 발생."""


class InsufficientDataError(BoVWError, ValueError):
    """군집화에 필요한 descriptor 수가 부족할 때 발생."""


class InsufficientDescriptorsError(InsufficientDataError):
    """
    이미지별 상한(max_descriptors_per_image) 적용 후 모은 descriptor 수가
    전역 상한(number_of_descriptors)에 미치지 못할 때 발생.

    Attributes:
        requested (int): 요청한 전역 descriptor 수.
        available (int): 실제로 모인 descriptor 수.
        max_per_image (int): 이미지별 상한 값.
    """

    def __init__(self, requested: int, available: int, max_per_image: int) -> None:
        self.requested = requested
        self.available = available
        self.max_per_image = max_per_image
        super().__init__(
            f"descriptor가 부족합니다: 요청={requested}, 수집={available} "
            f"(부족분={requested - available}). 이미지를 추가하거나 "
            f"max_descriptors_per_image({max_per_image})를 늘려주세요."
        )


class NotFittedError(BoVWError, RuntimeError):
    """학습(learn) 전에 transform 을 호출했을 때 발생."""
