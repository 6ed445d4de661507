"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.
"""

from typing import Dict, List, Sequence, Union

import pytest

from src.ocr.types import RecognitionError, RecognizerOptions


class FakeRecognizer:
    """Recognizer returning scripted texts, one per call.

    An Exception instance in the script is raised instead of returned; the
    last entry repeats once the script runs out.
    """

    def __init__(self, script: Sequence[Union[str, Exception]]):
        self.script: List[Union[str, Exception]] = list(script)
        self.calls: List[Dict] = []

    def recognize(self, image, languages, options: RecognizerOptions) -> str:
        index = min(len(self.calls), len(self.script) - 1)
        self.calls.append({"image": image, "languages": tuple(languages), "options": options})
        item = self.script[index]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_recognizer():
    """Factory for scripted recognizers."""
    return FakeRecognizer


@pytest.fixture
def engine_failure():
    """A recognizer failure as raised by the engine wrappers."""
    return RecognitionError("engine crashed")


@pytest.fixture
def stamp_image():
    """Fixture providing a synthetic BGR photo of a printed stamp."""
    import cv2
    import numpy as np

    # Light gray background with slight noise
    rng = np.random.default_rng(0)
    image = np.full((240, 640, 3), 200, dtype=np.uint8)
    noise = rng.integers(-10, 10, image.shape, dtype=np.int16)
    image = np.clip(image.astype(np.int16) + noise, 0, 255).astype(np.uint8)

    cv2.putText(image, "VAL 26/01/26", (20, 90), cv2.FONT_HERSHEY_SIMPLEX, 1.5, (20, 20, 20), 3)
    cv2.putText(image, "LS223 14:05", (20, 180), cv2.FONT_HERSHEY_SIMPLEX, 1.5, (20, 20, 20), 3)
    return image


@pytest.fixture
def source_image(stamp_image):
    """Stamp photo wrapped as a SourceImage."""
    from src.enhancement.types import SourceImage

    return SourceImage(pixels=stamp_image)
