"""Unit tests for OCR engine wrappers."""

import shlex
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import pytesseract

from src.ocr.config_loader import OCREngineConfig
from src.ocr.engine import Recognizer, create_recognizer
from src.ocr.engine_rapidocr import RapidOCRRecognizer, apply_whitelist
from src.ocr.engine_tesseract import TesseractRecognizer, build_tesseract_config
from src.ocr.types import RecognitionError, RecognizerOptions, SegmentationMode

LANGUAGES = ("por", "eng")


@pytest.fixture
def sample_image():
    """Provide sample grayscale image."""
    return np.random.randint(0, 255, (50, 200), dtype=np.uint8)


@pytest.fixture
def word_options():
    return RecognizerOptions(
        segmentation_mode=SegmentationMode.SINGLE_WORD,
        char_whitelist="0123456789./-: ",
        preserve_interword_spaces=True,
    )


class TestTesseractConfig:
    """Test option to command line mapping."""

    def test_psm_only(self):
        config = build_tesseract_config(RecognizerOptions(SegmentationMode.SINGLE_BLOCK))
        assert config == "--psm 6"

    def test_whitelist_with_space_survives_split(self, word_options):
        config = build_tesseract_config(word_options)
        tokens = shlex.split(config)

        assert tokens[:2] == ["--psm", "8"]
        assert "tessedit_char_whitelist=0123456789./-: " in tokens
        assert "preserve_interword_spaces=1" in tokens


class TestTesseractRecognizer:
    """Test Tesseract wrapper with pytesseract mocked."""

    def test_recognize(self, sample_image, word_options):
        recognizer = TesseractRecognizer(OCREngineConfig(type="tesseract"))
        with patch("pytesseract.image_to_string", return_value="  VAL 26/01/26\n") as mock:
            text = recognizer.recognize(sample_image, LANGUAGES, word_options)

        assert text == "VAL 26/01/26"
        kwargs = mock.call_args.kwargs
        assert kwargs["lang"] == "por+eng"
        assert kwargs["config"].startswith("--psm 8")

    def test_color_image_converted(self, word_options):
        recognizer = TesseractRecognizer()
        color = np.zeros((20, 40, 3), dtype=np.uint8)
        with patch("pytesseract.image_to_string", return_value="") as mock:
            recognizer.recognize(color, LANGUAGES, word_options)

        assert mock.call_args.args[0].ndim == 2

    def test_empty_result_is_not_an_error(self, sample_image, word_options):
        recognizer = TesseractRecognizer()
        with patch("pytesseract.image_to_string", return_value=""):
            assert recognizer.recognize(sample_image, LANGUAGES, word_options) == ""

    def test_tesseract_error_wrapped(self, sample_image, word_options):
        recognizer = TesseractRecognizer()
        error = pytesseract.TesseractError(1, "Failed loading language 'por'")
        with patch("pytesseract.image_to_string", side_effect=error):
            with pytest.raises(RecognitionError):
                recognizer.recognize(sample_image, LANGUAGES, word_options)

    def test_missing_binary_wrapped(self, sample_image, word_options):
        recognizer = TesseractRecognizer()
        with patch("pytesseract.image_to_string", side_effect=pytesseract.TesseractNotFoundError()):
            with pytest.raises(RecognitionError):
                recognizer.recognize(sample_image, LANGUAGES, word_options)

    def test_empty_image_rejected(self, word_options):
        with pytest.raises(RecognitionError):
            TesseractRecognizer().recognize(np.zeros((0, 0), dtype=np.uint8), LANGUAGES, word_options)


class TestRapidOCRRecognizer:
    """Test RapidOCR wrapper with the engine mocked."""

    def test_engine_not_loaded_on_init(self):
        recognizer = RapidOCRRecognizer(OCREngineConfig(type="rapidocr"))
        assert recognizer._engine is None

    def test_lazy_loading(self):
        with patch("rapidocr_onnxruntime.RapidOCR") as mock_cls:
            recognizer = RapidOCRRecognizer()
            engine = recognizer.engine

        assert engine is mock_cls.return_value
        assert recognizer.engine is engine
        mock_cls.assert_called_once()

    def test_lines_joined_in_reading_order(self, sample_image):
        recognizer = RapidOCRRecognizer()
        recognizer._engine = MagicMock(
            return_value=(
                [
                    [[[10, 40], [90, 40], [90, 60], [10, 60]], "LS223 14:05", 0.9],
                    [[[10, 5], [90, 5], [90, 25], [10, 25]], "VAL 26/01/26", 0.95],
                ],
                [0.1, 0.2, 0.3],
            )
        )

        text = recognizer.recognize(sample_image, LANGUAGES, RecognizerOptions())
        assert text == "VAL 26/01/26 LS223 14:05"

    def test_whitelist_post_filter(self, sample_image):
        recognizer = RapidOCRRecognizer()
        recognizer._engine = MagicMock(
            return_value=([[[[0, 0], [1, 0], [1, 1], [0, 1]], "val 26/01 #ls", 0.9]], [0.1])
        )
        options = RecognizerOptions(char_whitelist="ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789/ ")

        assert recognizer.recognize(sample_image, LANGUAGES, options) == "VAL 26/01 LS"

    def test_no_detections(self, sample_image):
        recognizer = RapidOCRRecognizer()
        recognizer._engine = MagicMock(return_value=(None, None))

        assert recognizer.recognize(sample_image, LANGUAGES, RecognizerOptions()) == ""

    def test_inference_error_wrapped(self, sample_image):
        recognizer = RapidOCRRecognizer()
        recognizer._engine = MagicMock(side_effect=RuntimeError("onnx failure"))

        with pytest.raises(RecognitionError):
            recognizer.recognize(sample_image, LANGUAGES, RecognizerOptions())

    def test_apply_whitelist_without_whitelist(self):
        assert apply_whitelist("ls 223", None) == "ls 223"


class TestCreateRecognizer:
    """Test engine selection."""

    def test_default_is_tesseract(self):
        recognizer = create_recognizer()
        assert isinstance(recognizer, TesseractRecognizer)
        assert isinstance(recognizer, Recognizer)

    def test_rapidocr(self):
        assert isinstance(create_recognizer(OCREngineConfig(type="rapidocr")), RapidOCRRecognizer)

    def test_unknown_type_falls_back(self):
        assert isinstance(create_recognizer(OCREngineConfig(type="paddle")), TesseractRecognizer)
