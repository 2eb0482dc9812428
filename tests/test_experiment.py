import json
import os
import tempfile
import unittest

from avsim.experiments.run_experiment import DEFAULT_SETTINGS, load_settings, run_headless_experiment


class TestHeadlessExperiment(unittest.TestCase):
    def test_default_settings(self):
        self.assertEqual(load_settings(None), DEFAULT_SETTINGS)

    def test_writes_per_tick_results(self):
        with tempfile.TemporaryDirectory() as tmp:
            config_path = os.path.join(tmp, "config.json")
            output_path = os.path.join(tmp, "out.json")
            with open(config_path, "w") as f:
                json.dump({"seed": 3, "ticks": 5, "waypoints": [[130, 100]]}, f)

            results = run_headless_experiment(config_path, output_path)

            with open(output_path) as f:
                written = json.load(f)

        self.assertEqual(written, results)
        self.assertEqual([r["tick"] for r in results], [1, 2, 3, 4, 5])
        self.assertEqual(results[-1]["time"], 500.0)
        self.assertEqual(results[0]["vehicles"][0]["id"], "AV-001")
        self.assertIn("decision", results[0]["vehicles"][0])

    def test_same_seed_same_results(self):
        with tempfile.TemporaryDirectory() as tmp:
            config_path = os.path.join(tmp, "config.json")
            with open(config_path, "w") as f:
                json.dump({"seed": 9, "ticks": 5}, f)
            first = run_headless_experiment(config_path, os.path.join(tmp, "a.json"))
            second = run_headless_experiment(config_path, os.path.join(tmp, "b.json"))
        self.assertEqual(first, second)


if __name__ == '__main__':
    unittest.main()
