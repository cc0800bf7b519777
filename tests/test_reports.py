import base64
import csv
import io
import tempfile
import unittest
from pathlib import Path

import pandas as pd
from openpyxl import load_workbook
from scipy.io import loadmat

from fast_PowerCurveReporter.core.aggregate import get_group_key
from fast_PowerCurveReporter.core.grouping import build_power_curve
from fast_PowerCurveReporter.core.model import BatchResult, FileSummary, InputFile
from fast_PowerCurveReporter.core.pipeline import run_pipeline
from fast_PowerCurveReporter.core.reports import (
    FILE_COLUMNS, GROUP_COLUMNS, export_file_name, render_csv, render_exports,
    render_fixed_width, render_xlsx, write_outputs,
)


def _summary(name, wind, power, rt_area=120.0):
    return FileSummary(file_name=name, group_key=get_group_key(name), power=power, torque=power / 10.0,
                       gen_speed=12.1, cp=0.123456789, ct=0.75, blade_pitch1=1.0, blade_pitch2=1.5,
                       blade_pitch3=2.0, wind_speed=wind, rotor_area=rt_area, n_rows=10)


def _result():
    seeds = [
        _summary("ntm_12mps_seed1.out", 12.2, 5000.0),
        _summary("ntm_08mps_seed1.out", 8.1, 1800.0, rt_area=150.0),
        _summary("ntm_12mps_seed2.out", 11.9, 5010.0),
        _summary("odd,name.out", 3.0, 1.0),
    ]
    curve, mean, peak = build_power_curve(seeds)
    return BatchResult(files_processed=len(seeds), all_file_results=seeds, power_curve=curve,
                       global_rt_area_mean=mean, global_rt_area_max=peak)


class CsvExportTests(unittest.TestCase):
    def test_header_follows_declared_order_without_rotor_area(self):
        text = render_csv(_result().all_file_results)
        header = text.splitlines()[0]
        self.assertEqual(",".join(h for h, _ in FILE_COLUMNS), header)
        self.assertNotIn("RtArea", text)
        curve_header = render_csv(_result().power_curve).splitlines()[0]
        self.assertEqual(",".join(h for h, _ in GROUP_COLUMNS), curve_header)

    def test_full_precision_uses_six_decimals(self):
        rows = list(csv.reader(io.StringIO(render_csv(_result().power_curve, "full"))))
        self.assertEqual("0.123457", rows[1][5])
        self.assertEqual("3.000000", rows[1][1])

    def test_compact_precision_rounds_to_four_decimals(self):
        rows = list(csv.reader(io.StringIO(render_csv(_result().power_curve, "compact"))))
        self.assertEqual("0.1235", rows[1][5])
        self.assertEqual("3.0", rows[1][1])

    def test_unknown_precision_is_rejected(self):
        with self.assertRaises(ValueError):
            render_csv(_result().power_curve, "exact")

    def test_fields_with_commas_and_quotes_are_quoted(self):
        seeds = [_summary('say "hi".out', 5.0, 1.0), _summary("odd,name.out", 6.0, 2.0)]
        lines = render_csv(seeds).splitlines()
        self.assertTrue(lines[1].startswith('"say ""hi""","say ""hi"".out",'))
        self.assertTrue(lines[2].startswith('"odd,name","odd,name.out",'))
        self.assertIn(",1.000000,", lines[1])

    def test_round_trip_within_precision(self):
        result = _result()
        for precision, tol in (("full", 5e-7), ("compact", 5e-5)):
            rows = list(csv.DictReader(io.StringIO(render_csv(result.all_file_results, precision))))
            self.assertEqual(len(result.all_file_results), len(rows))
            for rec, row in zip(result.all_file_results, rows):
                self.assertEqual(rec.file_name, row["fileName"])
                self.assertEqual(rec.group_key, row["windSpeedGroup"])
                for header, attr in FILE_COLUMNS[2:]:
                    self.assertLessEqual(abs(float(row[header]) - getattr(rec, attr)), tol + 1e-12)

    def test_empty_table_renders_empty(self):
        self.assertEqual("", render_csv([]))
        self.assertEqual("", render_fixed_width([]))


class FixedWidthExportTests(unittest.TestCase):
    def test_columns_are_padded_to_longest_cell_plus_two(self):
        curve = _result().power_curve
        lines = render_fixed_width(curve).splitlines()
        self.assertEqual(2 + len(curve), len(lines))
        self.assertEqual(set("-"), set(lines[1]))
        self.assertEqual(len(lines[0]), len(lines[1]))

        # "group": longest cell is "ntm_12mps" (9) -> width 11
        self.assertTrue(lines[0].startswith("group".ljust(11) + "windSpeed"))
        # "windSpeed" (9) vs "12.000000" (9) -> width 11
        self.assertEqual("windSpeed  ", lines[0][11:22])
        # "cp" (2) vs "0.123457" (8) -> width 10
        start = lines[0].index("cp ")
        self.assertEqual("0.123457  ", lines[2][start:start + 10])
        for line in lines:
            self.assertEqual(len(lines[0]), len(line))
        self.assertNotIn("RtArea", "\n".join(lines))

    def test_compact_cells(self):
        lines = render_fixed_width(_result().power_curve, "compact").splitlines()
        self.assertIn("0.1235", lines[2])
        self.assertNotIn("0.123457", lines[2])


class SpreadsheetExportTests(unittest.TestCase):
    def test_sheet_round_trips_values_and_sets_widths(self):
        result = _result()
        data = render_xlsx(result.all_file_results, "Seed Averages")
        df = pd.read_excel(io.BytesIO(data), sheet_name="Seed Averages")
        self.assertEqual([h for h, _ in FILE_COLUMNS], list(df.columns))
        self.assertEqual(len(result.all_file_results), len(df))
        self.assertAlmostEqual(0.123457, df["cp"].iloc[0], places=9)
        self.assertEqual("odd,name.out", df["fileName"].iloc[3])

        ws = load_workbook(io.BytesIO(data))["Seed Averages"]
        self.assertEqual(30, ws.column_dimensions["B"].width)
        self.assertEqual(20, ws.column_dimensions["A"].width)
        self.assertEqual(15, ws.column_dimensions["C"].width)

    def test_compact_sheet_uses_four_decimals(self):
        result = _result()
        df = pd.read_excel(io.BytesIO(render_xlsx(result.power_curve, "Power Curve", precision="compact")))
        self.assertEqual(0.1235, df["cp"].iloc[0])

        exports = render_exports(result, "compact")
        seeds = pd.read_excel(io.BytesIO(base64.b64decode(exports["individualSeedsXLSX"])))
        self.assertEqual([0.1235] * 4, seeds["cp"].tolist())
        curve = pd.read_excel(io.BytesIO(base64.b64decode(exports["powerCurveXLSX"])))
        self.assertEqual([0.1235] * 3, curve["cp"].tolist())

    def test_render_exports_sorts_seeds_and_encodes_base64(self):
        exports = render_exports(_result())
        seeds = pd.read_excel(io.BytesIO(base64.b64decode(exports["individualSeedsXLSX"])))
        self.assertEqual(sorted(seeds["windSpeed"].tolist()), seeds["windSpeed"].tolist())
        self.assertEqual("odd,name.out", seeds["fileName"].iloc[0])

        csv_rows = list(csv.DictReader(io.StringIO(exports["individualSeedsCSV"])))
        self.assertEqual(["odd,name.out", "ntm_08mps_seed1.out", "ntm_12mps_seed2.out", "ntm_12mps_seed1.out"],
                         [r["fileName"] for r in csv_rows])

        curve = pd.read_excel(io.BytesIO(base64.b64decode(exports["powerCurveXLSX"])), sheet_name="Power Curve")
        self.assertEqual([3.0, 8.0, 12.0], curve["windSpeed"].tolist())
        for key, payload in exports.items():
            text = payload if "XLSX" not in key else ""
            self.assertNotIn("RtArea", text)
            self.assertNotIn("rotor_area", text)


class OutputFileTests(unittest.TestCase):
    def test_export_file_names(self):
        self.assertEqual("all_seed_averages_2024-05-01.csv", export_file_name("individual", "2024-05-01", "csv"))
        self.assertEqual("final_power_curve_2024-05-01.fw.txt", export_file_name("power_curve", "2024-05-01", "fw"))

    def test_write_outputs_all_formats(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir) / "out"
            written = write_outputs(_result(), out_root, formats=("csv", "xlsx", "fw", "mat"), day="2024-05-01")
            names = sorted(p.name for p in written)
            self.assertEqual(8, len(names))
            for p in written:
                self.assertTrue(p.exists(), p)

            mat = loadmat(out_root / "final_power_curve_2024-05-01.mat", squeeze_me=True, struct_as_record=False)
            rec = mat["report_power_curve"]
            self.assertEqual([3.0, 8.0, 12.0], list(rec.windSpeed))
            self.assertFalse(hasattr(rec, "RtArea"))

            df = pd.read_csv(out_root / "final_power_curve_2024-05-01.csv")
            self.assertEqual(["odd,name", "ntm_08mps", "ntm_12mps"], df["group"].tolist())

    def test_unknown_format_writes_nothing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir) / "out"
            with self.assertRaises(ValueError):
                write_outputs(_result(), out_root, formats=["csv", "pdf"], day="2024-01-01")
            self.assertFalse(out_root.exists() and any(out_root.iterdir()))

    def test_unknown_precision_writes_nothing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir) / "out"
            with self.assertRaises(ValueError):
                write_outputs(_result(), out_root, formats=["csv"], precision="exact", day="2024-01-01")
            self.assertFalse(out_root.exists() and any(out_root.iterdir()))

    def test_run_pipeline_writes_reports_and_plot(self):
        text = (
            "Time GenPwr WindHubVelX RtArea\n"
            "(s) (kW) (m/s) (m^2)\n"
            "0.0 100.0 6.0 50.0\n"
            "0.1 300.0 6.2 50.0\n"
        )
        files = [InputFile.from_bytes("dlc_seed1.out", text.encode()),
                 InputFile.from_bytes("dlc_seed2.out", text.encode())]
        cfg = {
            "reports": {"formats": ["csv", "fw"], "precision": "compact", "date": "2024-05-01"},
            "plot": {"enabled": True, "file_name": "curve.png"},
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir)
            result = run_pipeline(files, cfg, out_root)
            self.assertEqual(1, len(result.power_curve))
            self.assertEqual(6.0, result.power_curve[0].wind_speed)
            self.assertTrue((out_root / "curve.png").exists())
            df = pd.read_csv(out_root / "all_seed_averages_2024-05-01.csv")
            self.assertEqual([200.0, 200.0], df["power"].tolist())
            self.assertTrue((out_root / "final_power_curve_2024-05-01.fw.txt").exists())


if __name__ == "__main__":
    unittest.main()
