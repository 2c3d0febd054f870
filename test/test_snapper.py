"""
Snap Resolver Tests (OSNAP)
"""

import math

import pytest

from config.feature_flags import set_flag
from drafting.entities import EllipseEntity, Point3D, PointEntity, make_arc, make_circle, make_line, make_polyline
from drafting.snapper import DEFAULT_SNAP_SETTINGS, SNAP_COLORS, SnapMode, SnapResolver, SnapSettings


def _resolver(entities, modes, aperture=10.0, magnet=False):
    settings = SnapSettings(modes=tuple(modes), aperture=aperture, magnet_enabled=magnet)
    return SnapResolver(settings, entities)


def _close(p, x, y, tol=1e-6):
    return math.isclose(p.x, x, abs_tol=tol) and math.isclose(p.y, y, abs_tol=tol)


class TestSettings:

    def test_defaults(self):
        assert DEFAULT_SNAP_SETTINGS.enabled is True
        assert DEFAULT_SNAP_SETTINGS.aperture == 10.0
        assert DEFAULT_SNAP_SETTINGS.magnet_strength == 0.5
        assert SnapMode.ENDPOINT in DEFAULT_SNAP_SETTINGS.modes

    def test_negative_aperture_rejected(self):
        with pytest.raises(ValueError):
            SnapSettings(aperture=-1.0)

    def test_strength_is_clamped_and_modes_deduplicated(self):
        settings = SnapSettings(modes=(SnapMode.CENTER, SnapMode.CENTER, SnapMode.ENDPOINT), magnet_strength=3.0)
        assert settings.modes == (SnapMode.CENTER, SnapMode.ENDPOINT)
        assert settings.magnet_strength == 1.0

    def test_every_mode_has_a_color(self):
        assert set(SNAP_COLORS) == set(SnapMode)

    def test_colors_are_distinct(self):
        assert len(set(SNAP_COLORS.values())) == len(SNAP_COLORS)

    def test_update_settings_merges(self):
        resolver = SnapResolver()
        resolver.update_settings(aperture=3.0)
        assert resolver.settings.aperture == 3.0
        assert resolver.settings.modes == DEFAULT_SNAP_SETTINGS.modes
        with pytest.raises(ValueError):
            resolver.update_settings(aperture=-2.0)


class TestModes:

    def test_endpoint(self):
        line = make_line(0, 0, 10, 0)
        result = _resolver([line], [SnapMode.ENDPOINT]).find_snap_point((9, 1))
        assert result.snapped
        assert result.mode == SnapMode.ENDPOINT
        assert result.entity is line
        assert _close(result.point, 10.0, 0.0)

    def test_midpoint_of_nearest_polyline_segment(self):
        poly = make_polyline([(0, 0), (10, 0), (10, 10)])
        result = _resolver([poly], [SnapMode.MIDPOINT]).find_snap_point((11, 6))
        assert _close(result.point, 10.0, 5.0)

    def test_center_of_closed_polyline(self):
        square = make_polyline([(0, 0), (4, 0), (4, 4), (0, 4)], closed=True)
        result = _resolver([square], [SnapMode.CENTER]).find_snap_point((2.5, 2.5))
        assert _close(result.point, 2.0, 2.0)

    def test_quadrant_only_on_arc(self):
        arc = make_arc(0, 0, 5, 0.0, math.pi / 2)
        resolver = _resolver([arc], [SnapMode.QUADRANT], aperture=3.0)
        # (-5, 0) liegt nicht auf dem Bogen
        result = resolver.find_snap_point((-4, 0))
        assert not result.snapped
        result = resolver.find_snap_point((0, 4))
        assert _close(result.point, 0.0, 5.0)

    def test_nearest_on_arc_is_clamped(self):
        arc = make_arc(0, 0, 5, 0.0, math.pi / 2)
        result = _resolver([arc], [SnapMode.NEAREST]).find_snap_point((5, -2))
        assert _close(result.point, 5.0, 0.0)

    def test_perpendicular_on_line(self):
        line = make_line(0, 0, 10, 0)
        result = _resolver([line], [SnapMode.PERPENDICULAR]).find_snap_point((4, 3))
        assert _close(result.point, 4.0, 0.0)

    def test_tangent_outside_only(self):
        circle = make_circle(0, 0, 5)
        resolver = _resolver([circle], [SnapMode.TANGENT])
        assert _close(resolver.find_snap_point((8, 0)).point, 5.0, 0.0)
        assert not resolver.find_snap_point((3, 0)).snapped

    def test_tangent_on_ellipse_uses_average_radius(self):
        ellipse = EllipseEntity(center=Point3D(0, 0), rx=6, ry=2)
        result = _resolver([ellipse], [SnapMode.TANGENT]).find_snap_point((0, 7))
        assert _close(result.point, 0.0, 4.0)

    def test_node_on_point_entity(self):
        point = PointEntity(position=Point3D(3, 3))
        result = _resolver([point], [SnapMode.NODE]).find_snap_point((4, 4))
        assert result.mode == SnapMode.NODE
        assert _close(result.point, 3.0, 3.0)

    def test_intersection(self):
        a = make_line(0, 0, 10, 0)
        b = make_line(5, -5, 5, 5)
        result = _resolver([a, b], [SnapMode.INTERSECTION]).find_snap_point((5.5, 0.5))
        assert result.mode == SnapMode.INTERSECTION
        assert _close(result.point, 5.0, 0.0)

    def test_intersection_flag_off(self):
        set_flag("snap_intersection", False)
        a = make_line(0, 0, 10, 0)
        b = make_line(5, -5, 5, 5)
        result = _resolver([a, b], [SnapMode.INTERSECTION]).find_snap_point((5.5, 0.5))
        assert not result.snapped

    def test_intersection_skipped_above_cap(self):
        lines = [make_line(-10, i * 0.01, 10, i * 0.01) for i in range(SnapResolver.MAX_INTERSECTION_ENTITIES)]
        lines.append(make_line(0, -10, 0, 10))
        result = _resolver(lines, [SnapMode.INTERSECTION]).find_snap_point((0.1, 0.1))
        assert not result.snapped


class TestResolution:

    def test_closest_candidate_wins(self):
        line = make_line(0, 0, 10, 0)
        result = _resolver([line], [SnapMode.ENDPOINT, SnapMode.MIDPOINT]).find_snap_point((6, 0.5))
        assert result.mode == SnapMode.MIDPOINT

    def test_tie_goes_to_mode_order(self):
        # Endpunkt und Mittelpunkt gleich weit entfernt
        line = make_line(0, 0, 10, 0)
        cursor = (7.5, 0)
        first = _resolver([line], [SnapMode.ENDPOINT, SnapMode.MIDPOINT]).find_snap_point(cursor)
        second = _resolver([line], [SnapMode.MIDPOINT, SnapMode.ENDPOINT]).find_snap_point(cursor)
        assert first.mode == SnapMode.ENDPOINT
        assert second.mode == SnapMode.MIDPOINT

    def test_tie_goes_to_entity_order(self):
        a = make_line(0, 0, 10, 0)
        b = make_line(0, 0, 10, 0)
        assert _resolver([a, b], [SnapMode.ENDPOINT]).find_snap_point((1, 1)).entity is a
        assert _resolver([b, a], [SnapMode.ENDPOINT]).find_snap_point((1, 1)).entity is b

    def test_outside_aperture_returns_cursor(self):
        line = make_line(0, 0, 10, 0)
        result = _resolver([line], [SnapMode.ENDPOINT], aperture=1.0).find_snap_point((5, 5))
        assert not result.snapped
        assert _close(result.point, 5.0, 5.0)

    def test_disabled_returns_cursor(self):
        resolver = SnapResolver(SnapSettings(enabled=False), [make_line(0, 0, 10, 0)])
        result = resolver.find_snap_point((0.1, 0.1))
        assert not result.snapped
        assert result.mode is None

    def test_invisible_entities_are_ignored(self):
        hidden = make_line(0, 0, 10, 0, visible=False)
        assert not _resolver([hidden], [SnapMode.ENDPOINT]).find_snap_point((0.1, 0)).snapped

    def test_zoom_scales_aperture(self):
        line = make_line(0, 0, 10, 0)
        resolver = _resolver([line], [SnapMode.ENDPOINT], aperture=10.0)
        assert resolver.find_snap_point((0, 4), zoom=2.0).snapped
        assert not resolver.find_snap_point((0, 6), zoom=2.0).snapped
        # zoom <= 0 wird wie 1 behandelt
        assert resolver.find_snap_point((0, 6), zoom=0).snapped

    def test_magnet_blends_toward_snap(self):
        line = make_line(0, 0, 10, 0)
        settings = SnapSettings(modes=(SnapMode.ENDPOINT,), magnet_enabled=True, magnet_strength=0.5)
        result = SnapResolver(settings, [line]).find_snap_point((10, 4))
        assert result.snapped
        assert _close(result.point, 10.0, 2.0)
        assert math.isclose(result.distance, 4.0, abs_tol=1e-9)

    @pytest.mark.parametrize("zoom", [0.5, 1.0, 4.0])
    def test_snapped_point_within_aperture(self, zoom):
        entities = [make_line(0, 0, 10, 0), make_circle(20, 0, 4), make_arc(-10, 0, 3, 0, math.pi)]
        resolver = SnapResolver(SnapSettings(modes=tuple(SnapMode), aperture=5.0), entities)
        for x in range(-15, 30, 3):
            for y in (-4, -1, 0, 2, 5):
                result = resolver.find_snap_point((x, y), zoom=zoom)
                if result.snapped:
                    assert math.hypot(result.point.x - x, result.point.y - y) <= 5.0 / zoom + 1e-9


class TestSnapshot:

    def test_update_entities_rebuilds(self):
        resolver = _resolver([], [SnapMode.ENDPOINT])
        assert not resolver.find_snap_point((0, 0)).snapped

        resolver.update_entities([make_line(0, 0, 10, 0)])
        assert resolver.find_snap_point((0.5, 0)).snapped
        assert len(resolver.entities) == 1

    def test_intersection_cache_is_cleared_on_update(self):
        a = make_line(0, 0, 10, 0)
        b = make_line(5, -5, 5, 5)
        resolver = _resolver([a, b], [SnapMode.INTERSECTION])
        assert resolver.find_snap_point((5, 0)).snapped
        assert resolver._intersection_cache

        resolver.update_entities([a])
        assert not resolver._intersection_cache
        assert not resolver.find_snap_point((5, 0)).snapped

    def test_spatial_index_matches_linear_scan(self):
        entities = [make_line(i * 3, 0, i * 3 + 2, 2) for i in range(30)] + [make_circle(40, 40, 5)]
        modes = (SnapMode.ENDPOINT, SnapMode.MIDPOINT, SnapMode.CENTER, SnapMode.NEAREST)
        resolver = SnapResolver(SnapSettings(modes=modes, aperture=2.0, magnet_enabled=False), entities)

        cursors = [(x * 1.7, y * 1.3) for x in range(0, 60, 7) for y in range(-2, 35, 9)]
        indexed = [resolver.find_snap_point(c) for c in cursors]
        set_flag("snap_spatial_index", False)
        linear = [resolver.find_snap_point(c) for c in cursors]

        for a, b in zip(indexed, linear):
            assert a.snapped == b.snapped
            assert a.mode == b.mode
            assert a.entity is b.entity
