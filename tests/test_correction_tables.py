"""Correction tables: loading, interpolation, domain limits and sharing."""

import threading

import numpy as np
import pytest

from RTSecondCheck.physics.correction_tables import (
    CorrectionTables,
    clear_table_cache,
    get_default_tables,
    interpolate_bilinear,
    interpolate_linear,
)
from RTSecondCheck.physics_data import DEFAULT_SCP_TABLE, DEFAULT_TPR_TABLE, list_tables
from RTSecondCheck.utils.validation import TableFormatError


class TestInterpolation:

    def test_linear_midpoint(self):
        assert interpolate_linear(np.array([0.0, 10.0]), np.array([1.0, 2.0]), 5.0) == pytest.approx(1.5)

    def test_linear_at_ends(self):
        axis, values = np.array([2.0, 4.0, 6.0]), np.array([0.9, 0.95, 1.0])
        assert interpolate_linear(axis, values, 2.0) == pytest.approx(0.9)
        assert interpolate_linear(axis, values, 6.0) == pytest.approx(1.0)

    @pytest.mark.parametrize("x", [1.999, 6.001, float('nan')])
    def test_linear_outside_is_zero(self, x):
        axis, values = np.array([2.0, 4.0, 6.0]), np.array([0.9, 0.95, 1.0])
        assert interpolate_linear(axis, values, x) == 0.0

    def test_bilinear_cell_centre(self):
        grid = np.array([[0.0, 1.0], [2.0, 3.0]])
        assert interpolate_bilinear(np.array([0.0, 1.0]), np.array([0.0, 1.0]), grid, 0.5, 0.5) == pytest.approx(1.5)

    def test_bilinear_last_corner(self):
        grid = np.array([[0.0, 1.0], [2.0, 3.0]])
        assert interpolate_bilinear(np.array([0.0, 1.0]), np.array([0.0, 1.0]), grid, 1.0, 1.0) == pytest.approx(3.0)

    def test_bilinear_outside_is_zero(self):
        grid = np.array([[0.0, 1.0], [2.0, 3.0]])
        assert interpolate_bilinear(np.array([0.0, 1.0]), np.array([0.0, 1.0]), grid, 1.5, 0.5) == 0.0


class TestBundledTables:

    def test_bundled_tables_present(self):
        assert DEFAULT_TPR_TABLE is not None
        assert DEFAULT_SCP_TABLE is not None
        assert 'ViewRay_TPR.csv' in list_tables()

    def test_axes(self, viewray_tables):
        assert viewray_tables.depth_range == (0.0, 30.0)
        assert viewray_tables.field_size_range == (2.0, 27.3)
        assert viewray_tables.tpr_values.shape == (20, 12)

    @pytest.mark.parametrize("depth, field_size, expected", [
        (5.0, 5.0, 0.8565),
        (5.0, 27.3, 0.8800),
        (0.5, 10.5, 1.0000),
        (10.0, 2.0, 0.7013),
    ])
    def test_tpr_grid_points(self, viewray_tables, depth, field_size, expected):
        assert viewray_tables.tpr(depth, field_size) == pytest.approx(expected)

    @pytest.mark.parametrize("field_size, expected", [(2.0, 0.9088), (10.5, 1.0), (27.3, 1.0526)])
    def test_scp_grid_points(self, viewray_tables, field_size, expected):
        assert viewray_tables.scp(field_size) == pytest.approx(expected)

    def test_tpr_between_field_sizes(self, viewray_tables):
        assert viewray_tables.tpr(5.0, 5.5) == pytest.approx((0.8565 + 0.8594) / 2)

    def test_tpr_between_depths(self, viewray_tables):
        assert viewray_tables.tpr(7.5, 10.5) == pytest.approx((0.8163 + 0.7912) / 2)

    @pytest.mark.parametrize("depth, field_size", [(31.0, 10.0), (5.0, 1.5), (5.0, 30.0), (-1.0, 10.0)])
    def test_tpr_outside_is_zero(self, viewray_tables, depth, field_size):
        assert viewray_tables.tpr(depth, field_size) == 0.0

    def test_arrays_read_only(self, viewray_tables):
        with pytest.raises(ValueError):
            viewray_tables.tpr_values[0, 0] = 2.0
        with pytest.raises(ValueError):
            viewray_tables.scp_values[0] = 2.0

    def test_tables_frozen(self, viewray_tables):
        with pytest.raises(AttributeError):
            viewray_tables.depths = np.array([1.0, 2.0])


class TestTableCache:

    def test_same_object_returned(self):
        assert get_default_tables() is get_default_tables()

    def test_explicit_paths_share_default_entry(self):
        assert get_default_tables(DEFAULT_TPR_TABLE, DEFAULT_SCP_TABLE) is get_default_tables()

    def test_concurrent_first_load(self):
        clear_table_cache()
        loaded = []
        threads = [threading.Thread(target=lambda: loaded.append(get_default_tables())) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(loaded) == 8
        assert all(tables is loaded[0] for tables in loaded)

    def test_clear_reloads(self):
        first = get_default_tables()
        clear_table_cache()
        assert get_default_tables() is not first


class TestTableFormat:

    def test_from_csv(self, tmp_path):
        tpr = tmp_path / 'tpr.csv'
        tpr.write_text(",2,4\n1,1.0,1.0\n5,0.8,0.84\n")
        scp = tmp_path / 'scp.csv'
        scp.write_text("2,4\n0.9,0.95\n")
        tables = CorrectionTables.from_csv(tpr, scp)
        assert tables.tpr(5.0, 4.0) == pytest.approx(0.84)
        assert tables.scp(3.0) == pytest.approx(0.925)

    def test_missing_file(self, tmp_path):
        with pytest.raises(TableFormatError):
            CorrectionTables.from_csv(tmp_path / 'missing.csv', DEFAULT_SCP_TABLE)

    def test_wrong_suffix(self, tmp_path):
        path = tmp_path / 'tpr.txt'
        path.write_text(",2,4\n1,1.0,1.0\n5,0.8,0.84\n")
        with pytest.raises(TableFormatError):
            CorrectionTables.from_csv(path, DEFAULT_SCP_TABLE)

    def test_empty_cell(self, tmp_path):
        tpr = tmp_path / 'tpr.csv'
        tpr.write_text(",2,4\n1,1.0,\n5,0.8,0.84\n")
        with pytest.raises(TableFormatError):
            CorrectionTables.from_csv(tpr, DEFAULT_SCP_TABLE)

    def test_axis_not_increasing(self):
        with pytest.raises(TableFormatError, match="increasing"):
            CorrectionTables.from_arrays(
                [[0, 4, 2], [1, 1, 1], [5, 0.8, 0.8]], [[2, 4], [0.9, 1.0]]
            )

    def test_scp_row_count(self):
        with pytest.raises(TableFormatError):
            CorrectionTables.from_arrays(
                [[0, 2, 4], [1, 1, 1], [5, 0.8, 0.8]], [[2, 4], [0.9, 1.0], [1.0, 1.0]]
            )

    def test_non_positive_factor(self):
        with pytest.raises(TableFormatError, match="positive"):
            CorrectionTables.from_arrays(
                [[0, 2, 4], [1, 1, 1], [5, 0.0, 0.8]], [[2, 4], [0.9, 1.0]]
            )


class TestMonotonicInterpolation:

    def test_tpr_non_decreasing_in_field_size(self, viewray_tables):
        sizes = np.linspace(2.0, 27.3, 200)
        values = [viewray_tables.tpr(5.0, size) for size in sizes]
        assert np.all(np.diff(values) >= -1e-12)

    def test_tpr_non_increasing_beyond_normalisation_depth(self, viewray_tables):
        depths = np.linspace(0.5, 30.0, 200)
        values = [viewray_tables.tpr(depth, 10.5) for depth in depths]
        assert np.all(np.diff(values) <= 1e-12)

    def test_scp_non_decreasing(self, small_tables):
        sizes = np.linspace(2.0, 6.0, 50)
        values = [small_tables.scp(size) for size in sizes]
        assert np.all(np.diff(values) >= -1e-12)
