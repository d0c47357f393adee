import os
import tempfile
import unittest

from gpmotion.configs import DEFAULT_GP_MOTION_FIT_CONFIG
from gpmotion.motion.config import GpMotionFitConfig
from gpmotion.motion.interpolation import BoundaryMode
from gpmotion.motion.kernels import KernelKind
from gpmotion.utils.config import get_config, merge_configs


class TestGpMotionFitConfig(unittest.TestCase):

    def test_default_yaml_has_section(self):
        parsed = get_config(DEFAULT_GP_MOTION_FIT_CONFIG)
        self.assertIn("GP_MOTION_FIT", parsed)

    def test_from_yaml_defaults(self):
        config = GpMotionFitConfig.from_yaml()
        self.assertEqual(config, GpMotionFitConfig())
        self.assertIs(config.kernel, KernelKind.GAUSSIAN)
        self.assertIs(config.boundary, BoundaryMode.CLAMP)

    def test_from_yaml_overrides(self):
        config = GpMotionFitConfig.from_yaml(threads=4, kernel="exponential")
        self.assertEqual(config.threads, 4)
        self.assertIs(config.kernel, KernelKind.EXPONENTIAL)

    def test_flat_yaml_and_unknown_keys(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "fit.yaml")
            with open(path, "w") as f:
                f.write("sig_vel_px: 0.25\nsig_acc_px: 2\nboundary: wrap\n"
                        "unused_key: 3\n")
            config = GpMotionFitConfig.from_yaml(path)

        self.assertEqual(config.sig_vel_px, 0.25)
        self.assertEqual(config.sig_acc_px, 2.0)
        self.assertIs(config.boundary, BoundaryMode.WRAP)

    def test_invalid_values_raise(self):
        for kwargs in ({"sig_vel_px": 0}, {"sig_div_px": -2},
                       {"sig_acc_px": -1}, {"max_dims": 0}, {"threads": 0},
                       {"eigenvalue_rtol": -1e-3}, {"kernel": "cosine"}):
            with self.assertRaises(ValueError):
                GpMotionFitConfig(**kwargs)

    def test_missing_file_raises(self):
        with self.assertRaises(FileNotFoundError):
            GpMotionFitConfig.from_yaml("/nonexistent/gp_motion_fit.yaml")

    def test_to_dict_round_trip(self):
        config = GpMotionFitConfig(sig_acc_px=0.5, kernel=True)
        values = config.to_dict()
        self.assertEqual(values["kernel"], "exponential")
        self.assertEqual(GpMotionFitConfig.from_dict(values), config)

    def test_merge_configs(self):
        merged = merge_configs([{"a": 1}, {"b": 2}, {"a": 3}])
        self.assertEqual(merged, {"a": 3, "b": 2})


if __name__ == "__main__":
    unittest.main()
