import io
import logging
import unittest

from colorama import Fore

from dumper.core.rules import ResourceKey
from dumper.logs import build_logger, silent_logger
from dumper.models import CopyPlanItem
from dumper.progress import CopyProgress


class TestLogs(unittest.TestCase):
    def test_verbose_gates_debug_trace(self):
        buf = io.StringIO()
        log = build_logger(verbose=False, stream=buf)
        log.debug("per-file trace")
        log.warning("always shown")
        self.assertNotIn("per-file trace", buf.getvalue())
        self.assertIn("always shown", buf.getvalue())

        buf = io.StringIO()
        log = build_logger(verbose=True, stream=buf)
        log.debug("per-file trace")
        self.assertIn("per-file trace", buf.getvalue())

    def test_color_only_when_requested(self):
        buf = io.StringIO()
        build_logger(stream=buf).error("plain")
        self.assertNotIn("\x1b[", buf.getvalue())

        buf = io.StringIO()
        build_logger(stream=buf, use_color=True).error("colored")
        self.assertIn(Fore.RED, buf.getvalue())

    def test_loggers_are_not_shared(self):
        a = build_logger(stream=io.StringIO())
        b = build_logger(stream=io.StringIO())
        self.assertIsNot(a, b)
        self.assertIsNot(a, logging.getLogger("dumper"))
        self.assertEqual(len(a.handlers), 1)
        silent_logger().error("goes nowhere")


class TestCopyProgress(unittest.TestCase):
    def test_non_interactive_progress_logs_periodically(self):
        buf = io.StringIO()
        log = build_logger(stream=buf)
        item = CopyPlanItem(src="a", relpath="a", dst="b", category=ResourceKey.CARS)

        progress = CopyProgress(total=5, interactive=False, log=log, log_every=2)
        for i in range(1, 6):
            progress.callback(i, 5, item)
        progress.close()

        lines = [l for l in buf.getvalue().splitlines() if "Copy progress" in l]
        self.assertEqual(len(lines), 3)  # 2, 4 and the final 5
        self.assertIn("5/5", lines[-1])
        self.assertEqual(progress.count, 5)

    def test_interactive_progress_uses_tqdm(self):
        log = build_logger(stream=io.StringIO())
        item = CopyPlanItem(src="a", relpath="a", dst="b", category=ResourceKey.BIKES)
        progress = CopyProgress(total=2, interactive=True, log=log)
        progress.callback(1, 2, item)
        progress.callback(2, 2, item)
        self.assertEqual(progress._tqdm.n, 2)
        progress.close()
        self.assertIsNone(progress._tqdm)


if __name__ == "__main__":
    unittest.main()
