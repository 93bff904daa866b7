"""
Tests for the receipt-prep command line.
"""

import json

from conftest import solid, write_png
from receipt_prep.cli.process_receipts import build_parser, main, output_path_for


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args(["receipt.jpg"])
        assert args.inputs == ["receipt.jpg"]
        assert args.quality is None
        assert not args.sharpen and not args.contrast and not args.threshold
        assert args.normalize is None

    def test_output_name(self, tmp_path):
        source = tmp_path / "in" / "shop.png"
        assert output_path_for(source, None) == tmp_path / "in" / "shop_cropped.jpg"
        assert output_path_for(source, tmp_path / "out") == tmp_path / "out" / "shop_cropped.jpg"


class TestMain:

    def test_single_file(self, tmp_path, framed_receipt):
        source = write_png(tmp_path / "shop.png", framed_receipt.pixels)
        out_dir = tmp_path / "out"

        assert main([str(source), "-o", str(out_dir), "--quality", "90", "--contrast"]) == 0
        assert (out_dir / "shop_cropped.jpg").exists()

    def test_directory_with_failure(self, tmp_path, framed_receipt):
        write_png(tmp_path / "a_good.png", framed_receipt.pixels)
        write_png(tmp_path / "b_dark.png", solid(60, 60, (10, 10, 10, 255)))
        out_dir = tmp_path / "out"

        assert main([str(tmp_path), "-o", str(out_dir)]) == 1
        assert (out_dir / "a_good_cropped.jpg").exists()
        assert not (out_dir / "b_dark_cropped.jpg").exists()

    def test_invalid_option(self, tmp_path, framed_receipt):
        source = write_png(tmp_path / "shop.png", framed_receipt.pixels)
        assert main([str(source), "--quality", "0"]) == 2
        assert main([str(source), "--normalize", "chunk", "--overlap", "2000"]) == 2
        assert not (tmp_path / "shop_cropped.jpg").exists()

    def test_json_report(self, tmp_path, framed_receipt, capsys):
        source = write_png(tmp_path / "shop.png", framed_receipt.pixels)

        assert main([str(source), "--json"]) == 0
        report = json.loads(capsys.readouterr().out.strip())
        assert report["output"] == str(tmp_path / "shop_cropped.jpg")
        assert report["cropped_dimensions"] == {"width": 112, "height": 62}

    def test_normalize(self, tmp_path, framed_receipt):
        source = write_png(tmp_path / "shop.png", framed_receipt.pixels)

        assert main([str(source), "--normalize", "letterbox"]) == 0
        assert (tmp_path / "shop_cropped.jpg").exists()
        assert (tmp_path / "shop_normalized.jpg").exists()

    def test_uniform_strategy(self, tmp_path, gray_scan, capsys):
        source = write_png(tmp_path / "scan.png", gray_scan.pixels)

        assert main([str(source), "--strategy", "uniform", "--json"]) == 0
        report = json.loads(capsys.readouterr().out.strip())
        assert report["cropped_dimensions"] == {"width": 40, "height": 36}
        assert report["rotation"]["method"] == "not_attempted"
        assert (tmp_path / "scan_cropped.jpg").exists()
