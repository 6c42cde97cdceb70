import os
import stat
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from dumper.core.copier import copy_all, execute_copy
from dumper.core.rules import ResourceKey, default_categories
from dumper.core.scanner import scan_resources
from dumper.models import CategoryResult, CopyPlanItem, MatchRecord, RunStats


class TestCopier(unittest.TestCase):
    def test_copy_creates_intermediate_directories(self):
        with tempfile.TemporaryDirectory() as tin, tempfile.TemporaryDirectory() as tout:
            src_root = Path(tin)
            src_file = src_root / "stream" / "deep" / "car1.yft"
            src_file.parent.mkdir(parents=True)
            src_file.write_bytes(b"\x00\x01binary\xff")

            dest = Path(tout) / "not" / "yet" / "there"
            stats = scan_resources(str(src_root), (ResourceKey.CARS,))
            summary = copy_all(stats, str(src_root), str(dest))

            self.assertEqual((summary.total, summary.copied, summary.failed), (1, 1, 0))
            copied = dest / "resources" / "cars" / "stream" / "deep" / "car1.yft"
            self.assertEqual(copied.read_bytes(), b"\x00\x01binary\xff")
            self.assertEqual((stats.files_copied, stats.files_failed), (1, 0))

    def test_multi_category_file_copied_into_each_bucket(self):
        with tempfile.TemporaryDirectory() as tin, tempfile.TemporaryDirectory() as tout:
            src_root = Path(tin)
            (src_root / "bike_frame.yft").write_bytes(b"frame")

            stats = scan_resources(str(src_root), (ResourceKey.CARS, ResourceKey.BIKES))
            summary = copy_all(stats, str(src_root), tout)

            self.assertEqual(summary.copied, 2)
            self.assertEqual((Path(tout) / "resources" / "cars" / "bike_frame.yft").read_bytes(), b"frame")
            self.assertEqual((Path(tout) / "resources" / "bikes" / "bike_frame.yft").read_bytes(), b"frame")

    def test_vanished_source_counts_as_failure_and_continues(self):
        with tempfile.TemporaryDirectory() as tin, tempfile.TemporaryDirectory() as tout:
            src_root = Path(tin)
            for i in range(5):
                (src_root / f"car{i}.yft").write_bytes(f"car{i}".encode())

            stats = scan_resources(str(src_root), (ResourceKey.CARS,))
            (src_root / "car2.yft").unlink()

            summary = copy_all(stats, str(src_root), tout)

            self.assertEqual((summary.copied, summary.failed), (4, 1))
            self.assertEqual(summary.copied + summary.failed, stats.total_files_scanned)
            self.assertEqual((stats.files_copied, stats.files_failed), (4, 1))
            errors = [i for i in stats.issues if i.level == "ERROR"]
            self.assertEqual([i.code for i in errors], ["SRC_MISSING"])
            self.assertTrue(errors[0].path.endswith("car2.yft"))
            self.assertFalse((Path(tout) / "resources" / "cars" / "car2.yft").exists())

    def test_existing_destination_overwritten(self):
        with tempfile.TemporaryDirectory() as tin, tempfile.TemporaryDirectory() as tout:
            src = Path(tin) / "handling.meta"
            src.write_text("new", encoding="utf-8")
            dst = Path(tout) / "resources" / "cars" / "handling.meta"
            dst.parent.mkdir(parents=True)
            dst.write_text("old", encoding="utf-8")

            plan = [CopyPlanItem(src=str(src), relpath="handling.meta", dst=str(dst), category=ResourceKey.CARS)]
            summary, issues = execute_copy(plan)

            self.assertEqual(summary.copied, 1)
            self.assertEqual(issues, [])
            self.assertEqual(dst.read_text(encoding="utf-8"), "new")

    def test_rerun_replaces_read_only_copy(self):
        with tempfile.TemporaryDirectory() as tin, tempfile.TemporaryDirectory() as tout:
            src = Path(tin) / "car1.yft"
            src.write_bytes(b"first")
            src.chmod(0o444)

            stats = scan_resources(tin, (ResourceKey.CARS,))
            first = copy_all(stats, tin, tout)
            dst = Path(tout) / "resources" / "cars" / "car1.yft"
            self.assertEqual(first.copied, 1)
            self.assertFalse(dst.stat().st_mode & stat.S_IWUSR)

            src.chmod(0o644)
            src.write_bytes(b"second")
            src.chmod(0o444)

            stats = scan_resources(tin, (ResourceKey.CARS,))
            second = copy_all(stats, tin, tout)
            self.assertEqual((second.copied, second.failed), (1, 0))
            self.assertEqual(stats.files_failed, 0)
            self.assertEqual(dst.read_bytes(), b"second")

    def test_copy_error_is_isolated(self):
        with tempfile.TemporaryDirectory() as tin, tempfile.TemporaryDirectory() as tout:
            a = Path(tin) / "a.yft"
            b = Path(tin) / "b.yft"
            a.write_bytes(b"a")
            b.write_bytes(b"b")
            plan = [
                CopyPlanItem(src=str(a), relpath="a.yft", dst=str(Path(tout) / "a.yft"), category=ResourceKey.CARS),
                CopyPlanItem(src=str(b), relpath="b.yft", dst=str(Path(tout) / "b.yft"), category=ResourceKey.CARS),
            ]

            real_copy2 = __import__("shutil").copy2

            def flaky_copy2(s, d, *args, **kwargs):
                if str(s).endswith("a.yft"):
                    raise OSError(28, "No space left on device")
                return real_copy2(s, d, *args, **kwargs)

            calls = []
            with mock.patch("shutil.copy2", side_effect=flaky_copy2):
                summary, issues = execute_copy(plan, progress_cb=lambda i, t, item: calls.append((i, t)))

            self.assertEqual((summary.copied, summary.failed), (1, 1))
            self.assertEqual([i.code for i in issues], ["COPY_FAILED"])
            self.assertEqual(calls, [(1, 2), (2, 2)])
            self.assertTrue((Path(tout) / "b.yft").exists())

    def test_plan_rejects_count_as_failures(self):
        with tempfile.TemporaryDirectory() as tin, tempfile.TemporaryDirectory() as tout:
            stats = RunStats()
            result = CategoryResult(category=default_categories()[ResourceKey.CARS])
            result.add(MatchRecord(path=str(Path(tout).resolve() / "stray.yft"), size_bytes=1))
            stats.per_category[ResourceKey.CARS] = result

            summary = copy_all(stats, tin, tout)

            self.assertEqual((summary.total, summary.copied, summary.failed), (1, 0, 1))
            self.assertEqual(stats.files_failed, 1)


if __name__ == "__main__":
    unittest.main()
