import math
import unittest
from types import SimpleNamespace

from rideweather.domain import ForecastPoint
from rideweather.errors import ErrorType, ValidationError
from rideweather.validation import is_valid_point, validate_point


class TestIsValidPoint(unittest.TestCase):
    def test_accepts_forecast_point_and_mapping(self):
        self.assertTrue(is_valid_point(ForecastPoint(lat=45.0, lon=-122.0, timestamp=1_700_000_000)))
        self.assertTrue(is_valid_point({"lat": 45, "lon": -122, "timestamp": 1_700_000_000}))
        self.assertTrue(is_valid_point(SimpleNamespace(lat=0.0, lon=0.0, timestamp=0)))

    def test_boundaries_are_inclusive(self):
        for lat, lon in [(90, 180), (-90, -180), (90.0, -180.0)]:
            self.assertTrue(is_valid_point({"lat": lat, "lon": lon, "timestamp": 1}))

    def test_out_of_range(self):
        self.assertFalse(is_valid_point({"lat": 90.0001, "lon": 0, "timestamp": 1}))
        self.assertFalse(is_valid_point({"lat": 0, "lon": -180.5, "timestamp": 1}))

    def test_missing_or_non_numeric_fields(self):
        self.assertFalse(is_valid_point(None))
        self.assertFalse(is_valid_point({}))
        self.assertFalse(is_valid_point({"lat": 1, "lon": 2}))
        self.assertFalse(is_valid_point({"lat": "45", "lon": 2, "timestamp": 1}))
        self.assertFalse(is_valid_point({"lat": 1, "lon": 2, "timestamp": "now"}))
        self.assertFalse(is_valid_point({"lat": True, "lon": 2, "timestamp": 1}))

    def test_nan_and_infinity_rejected(self):
        self.assertFalse(is_valid_point({"lat": math.nan, "lon": 0, "timestamp": 1}))
        self.assertFalse(is_valid_point({"lat": 0, "lon": math.inf, "timestamp": 1}))
        self.assertFalse(is_valid_point({"lat": 0, "lon": 0, "timestamp": math.inf}))

    def test_ints_too_large_for_float_rejected(self):
        self.assertFalse(is_valid_point({"lat": 10**400, "lon": 0, "timestamp": 1}))
        self.assertFalse(is_valid_point({"lat": 0, "lon": 0, "timestamp": 10**400}))


class TestValidatePoint(unittest.TestCase):
    def test_returns_forecast_point_unchanged(self):
        point = ForecastPoint(lat=1.0, lon=2.0, timestamp=3, distance=4.0)
        self.assertIs(validate_point(point), point)

    def test_builds_point_from_mapping(self):
        point = validate_point({"lat": 1.5, "lon": 2.5, "timestamp": 10, "distance": 7.5})
        self.assertEqual(point, ForecastPoint(lat=1.5, lon=2.5, timestamp=10, distance=7.5))

    def test_missing_distance_defaults_to_zero(self):
        self.assertEqual(validate_point({"lat": 1, "lon": 2, "timestamp": 3}).distance, 0.0)

    def test_raises_typed_error(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_point({"lat": 1000, "lon": 0, "timestamp": 1})
        self.assertEqual(ctx.exception.code, ErrorType.VALIDATION)
        self.assertEqual(ctx.exception.message, "Invalid forecast point")
        self.assertEqual(ctx.exception.status, 400)


if __name__ == "__main__":
    unittest.main()
