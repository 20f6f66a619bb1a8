import sys
import tempfile
import unittest
from pathlib import Path

# Ensure `src/` layout is importable when running tests without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
sys.path.insert(0, str(SRC_DIR))


class TestResultWriter(unittest.TestCase):
    def test_extension_for_mime_type(self):
        from geminiops.artifacts import extension_for_mime_type

        self.assertEqual(extension_for_mime_type("image/jpeg"), "jpeg")
        self.assertEqual(extension_for_mime_type("image/svg+xml"), "svg")
        self.assertEqual(extension_for_mime_type(""), "png")
        self.assertEqual(extension_for_mime_type(None), "png")

    def test_indexed_path(self):
        from geminiops.artifacts import indexed_path

        self.assertEqual(indexed_path("name.png", 1), "name_1.png")
        self.assertEqual(indexed_path("out/name", 2), "out/name_2")
        self.assertEqual(indexed_path("dir.v2/name", 3), "dir.v2/name_3")

    def test_single_artifact_uses_output_verbatim(self):
        from geminiops.artifacts import output_paths
        from geminiops.types import Artifact

        arts = [Artifact(data=b"x", mime_type="image/png")]
        self.assertEqual(output_paths(arts, "name.png"), ["name.png"])

    def test_single_artifact_synthesized_name(self):
        from geminiops.artifacts import output_paths
        from geminiops.types import Artifact

        arts = [Artifact(data=b"x", mime_type="image/jpeg")]
        self.assertEqual(output_paths(arts, None, prefix="upscaled", now_ms=1700000000123), ["upscaled_1700000000123.jpeg"])

    def test_many_artifacts_are_indexed(self):
        from geminiops.artifacts import output_paths
        from geminiops.types import Artifact

        arts = [Artifact(data=bytes([i]), mime_type="image/png") for i in range(3)]
        self.assertEqual(output_paths(arts, "name.png"), ["name_1.png", "name_2.png", "name_3.png"])
        self.assertEqual(output_paths(arts, "name"), ["name_1", "name_2", "name_3"])
        self.assertEqual(
            output_paths(arts, None, prefix="edited", now_ms=5),
            ["edited_5_1.png", "edited_5_2.png", "edited_5_3.png"],
        )

    def test_write_artifacts_writes_each_file(self):
        from geminiops.artifacts import write_artifacts
        from geminiops.types import Artifact

        arts = [Artifact(data=b"one", mime_type="image/png"), Artifact(data=b"two", mime_type="image/png")]
        with tempfile.TemporaryDirectory() as td:
            written = write_artifacts(arts, str(Path(td) / "cube.png"))
            self.assertEqual([p.name for p in written], ["cube_1.png", "cube_2.png"])
            self.assertEqual((Path(td) / "cube_1.png").read_bytes(), b"one")
            self.assertEqual((Path(td) / "cube_2.png").read_bytes(), b"two")

    def test_partial_batch_leaves_earlier_files(self):
        from geminiops.artifacts import write_artifacts
        from geminiops.types import Artifact

        arts = [Artifact(data=b"one", mime_type="image/png"), Artifact(data=b"two", mime_type="image/png")]
        with tempfile.TemporaryDirectory() as td:
            # Second target is an existing directory, so its write fails.
            (Path(td) / "x_2.png").mkdir()
            with self.assertRaises(OSError):
                write_artifacts(arts, str(Path(td) / "x.png"))
            self.assertEqual((Path(td) / "x_1.png").read_bytes(), b"one")

    def test_write_svg_is_utf8_text(self):
        from geminiops.artifacts import write_svg

        svg = '<svg xmlns="http://www.w3.org/2000/svg"><text>café</text></svg>'
        with tempfile.TemporaryDirectory() as td:
            p = write_svg(svg, Path(td) / "logo.svg")
            self.assertEqual(p.read_bytes(), svg.encode("utf-8"))

    def test_write_masks_creates_directory_and_names_files(self):
        from geminiops.artifacts import mask_filename, write_masks
        from geminiops.types import SegmentationMask

        self.assertEqual(mask_filename(2, "red  sports car"), "mask_2_red_sports_car.png")

        masks = [
            SegmentationMask(label="cat", box_2d=[1, 2, 3, 4], mask=b"m1"),
            SegmentationMask(label="coffee mug", box_2d=[5, 6, 7, 8], mask=b"m2"),
        ]
        with tempfile.TemporaryDirectory() as td:
            out_dir = Path(td) / "nested" / "masks"
            written = write_masks(masks, out_dir)
            self.assertEqual([p.name for p in written], ["mask_1_cat.png", "mask_2_coffee_mug.png"])
            self.assertEqual((out_dir / "mask_2_coffee_mug.png").read_bytes(), b"m2")

    def test_mask_filename_collapses_whitespace_runs(self):
        from geminiops.artifacts import mask_filename

        self.assertEqual(mask_filename(1, "cat"), "mask_1_cat.png")
        self.assertEqual(mask_filename(3, "coffee   mug"), "mask_3_coffee_mug.png")
        self.assertEqual(mask_filename(4, "desk\t\tlamp \t shade"), "mask_4_desk_lamp_shade.png")

    def test_format_usage(self):
        from geminiops.artifacts import format_box, format_usage
        from geminiops.types import Usage

        self.assertIsNone(format_usage(None))
        self.assertEqual(format_usage(Usage(3, 5, 8)), "Tokens: 3 prompt, 5 completion, 8 total")
        self.assertEqual(format_box([10, 20, 300, 400]), "[10, 20, 300, 400]")


if __name__ == "__main__":
    unittest.main()
