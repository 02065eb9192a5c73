import json
import tempfile
import unittest
from pathlib import Path

from pose_kit.config import PRESETS, PipelineProfile, load_pipeline_profile, profile_from_preset
from pose_kit.errors import ConfigurationError


class TestPipelineProfile(unittest.TestCase):
    def _write_profile(self, payload: dict) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "profile.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load_ok(self) -> None:
        path = self._write_profile(
            {
                "schema_version": 1,
                "conf_threshold": 0.6,
                "nms": "iou",
                "iou_threshold": 0.3,
                "max_detections": 10,
                "mapping": "aspect_fit",
                "flip_y": True,
                "notes": "test",
            }
        )
        profile = load_pipeline_profile(path)
        self.assertIsInstance(profile, PipelineProfile)
        self.assertEqual(profile.conf_threshold, 0.6)
        self.assertEqual(profile.iou_threshold, 0.3)
        self.assertEqual(profile.max_detections, 10)
        self.assertEqual(profile.mapping, "aspect_fit")
        self.assertTrue(profile.flip_y)
        self.assertEqual(profile.notes, "test")

    def test_preset_with_overrides(self) -> None:
        path = self._write_profile({"preset": "wrist_hand", "distance_threshold": 40, "crop_size": 256})
        profile = load_pipeline_profile(path)
        self.assertTrue(profile.hand_stage)
        self.assertEqual(profile.conf_threshold, 0.7)
        self.assertEqual(profile.distance_threshold, 40.0)
        self.assertEqual(profile.crop_size, 256)

    def test_unknown_keys_rejected(self) -> None:
        path = self._write_profile({"conf_threshold": 0.5, "extra": 123})
        with self.assertRaises(ValueError):
            load_pipeline_profile(path)

    def test_invalid_values_rejected(self) -> None:
        for payload in (
            {"conf_threshold": 1.5},
            {"conf_threshold": "high"},
            {"flip_y": 1},
            {"nms": "soft"},
            {"crop_size": 12.5},
            {"schema_version": 2},
            {"preset": "nope"},
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(ConfigurationError):
                    load_pipeline_profile(self._write_profile(payload))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_pipeline_profile(Path("does/not/exist.json"))

    def test_hand_stage_requires_wrists(self) -> None:
        with self.assertRaises(ConfigurationError):
            PipelineProfile(hand_stage=True)

    def test_presets_mirror_demo_variants(self) -> None:
        self.assertEqual(set(PRESETS), {"basic", "pose", "pose_skeleton", "wrist_hand", "hand"})
        skeleton = profile_from_preset("pose_skeleton")
        self.assertEqual(skeleton.keypoint_activation, "sigmoid")
        self.assertEqual(skeleton.mapping, "aspect_fit")
        self.assertEqual(skeleton.max_detections, 200)
        self.assertTrue(skeleton.draw_skeleton)
        basic = profile_from_preset("basic", conf_threshold=0.4)
        self.assertEqual(basic.conf_threshold, 0.4)
        self.assertEqual(basic.iou_threshold, 0.45)
        self.assertEqual(profile_from_preset("wrist_hand").nms, "distance")
        hand = profile_from_preset("hand")
        self.assertEqual((hand.task, hand.preprocess, hand.model_size), ("hand", "center_crop", 224))

    def test_hand_task_needs_hand_schema(self) -> None:
        with self.assertRaises(ConfigurationError):
            PipelineProfile(task="hand")
        with self.assertRaises(ConfigurationError):
            PipelineProfile(keypoint_schema="hand21")
        with self.assertRaises(ConfigurationError):
            profile_from_preset("hand", wrists_only=True)
        with self.assertRaises(ConfigurationError):
            PipelineProfile(task="segment")


if __name__ == "__main__":
    unittest.main()
