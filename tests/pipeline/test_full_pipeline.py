"""Tests for the command-line pipeline."""

import json
from unittest.mock import patch

import cv2
import pytest

from src.pipeline.full_pipeline import main


@pytest.fixture
def stamp_file(tmp_path, stamp_image):
    path = tmp_path / "stamp.png"
    cv2.imwrite(str(path), stamp_image)
    return path


def run_main(args, recognizer):
    with patch("src.validation.processor.create_recognizer", return_value=recognizer):
        return main([str(a) for a in args])


class TestMain:
    """Test the CLI entry point."""

    def test_valid_stamp_writes_report(self, stamp_file, tmp_path, fake_recognizer, capsys):
        output = tmp_path / "out" / "results.json"
        code = run_main(
            [stamp_file, "--reference-date", "2025-08-11", "--now", "2025-08-11", "--output", output],
            fake_recognizer(["VAL 26/01/26 LS223 14:05"]),
        )

        assert code == 0
        printed = capsys.readouterr().out
        assert "stamp.png: VALID" in printed
        assert "read: 26/01/2026 LS223 14:05" in printed

        report = json.loads(output.read_text(encoding="utf-8"))
        assert report["reference_date"] == "2025-08-11"
        assert report["results"][0]["status"] == "valid"
        assert report["results"][0]["target_iso"] == "2026-01-26"

    def test_divergent_stamp_exit_code(self, stamp_file, fake_recognizer):
        code = run_main(
            [stamp_file, "--reference-date", "2025-09-01", "--now", "2025-09-01"],
            fake_recognizer(["VAL 26/01/26 LS223"]),
        )
        assert code == 1

    def test_unreadable_file_does_not_stop_batch(self, stamp_file, tmp_path, fake_recognizer, capsys):
        broken = tmp_path / "broken.jpg"
        broken.write_bytes(b"not an image")
        output = tmp_path / "results.json"

        code = run_main(
            [stamp_file, broken, "--reference-date", "2025-08-11", "--now", "2025-08-11", "--output", output],
            fake_recognizer(["VAL 26/01/26 LS223 14:05"]),
        )

        assert code == 1
        printed = capsys.readouterr().out
        assert "stamp.png: VALID" in printed
        assert "broken.jpg: ERROR" in printed

        statuses = [r["status"] for r in json.loads(output.read_text(encoding="utf-8"))["results"]]
        assert statuses == ["valid", "error"]

    def test_bad_crop_rejected(self, stamp_file, fake_recognizer):
        with pytest.raises(SystemExit):
            run_main([stamp_file, "--crop", "1,2,3"], fake_recognizer([""]))

    def test_too_many_images_rejected(self, stamp_file, fake_recognizer):
        with pytest.raises(SystemExit):
            run_main([stamp_file] * 9, fake_recognizer([""]))
