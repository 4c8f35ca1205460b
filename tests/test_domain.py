import unittest

from pydantic import ValidationError

from rideweather.domain import ForecastPoint, Outcome, PointResult, WeatherData


class TestWeatherData(unittest.TestCase):
    def test_parses_camel_case_payload(self):
        data = WeatherData.model_validate({
            "temperature": 18.2,
            "feelsLike": 17,
            "windSpeed": 12.5,
            "precipitationProbability": 0.4,
            "weatherIcon": "10d",
            "timestamp": 1_700_000_000,
        })
        self.assertEqual(data.feels_like, 17)
        self.assertEqual(data.wind_speed, 12.5)
        self.assertEqual(data.weather_icon, "10d")
        self.assertIsNone(data.humidity)

    def test_requires_temperature_fields(self):
        with self.assertRaises(ValidationError):
            WeatherData.model_validate({"feelsLike": 10})
        with self.assertRaises(ValidationError):
            WeatherData.model_validate({"temperature": 10})

    def test_rejects_string_numbers_and_out_of_range(self):
        with self.assertRaises(ValidationError):
            WeatherData.model_validate({"temperature": "10", "feelsLike": 9})
        with self.assertRaises(ValidationError):
            WeatherData.model_validate({"temperature": 10, "feelsLike": 9, "humidity": 140})
        with self.assertRaises(ValidationError):
            WeatherData.model_validate({"temperature": 10, "feelsLike": 9, "precipitationProbability": 1.5})

    def test_ignores_unknown_keys(self):
        data = WeatherData.model_validate({"temperature": 1.0, "feelsLike": 0.5, "source": "mock"})
        self.assertEqual(data.temperature, 1.0)

    def test_to_wire_uses_aliases_and_drops_none(self):
        wire = WeatherData(temperature=5.0, feels_like=3.0, wind_speed=2.0).to_wire()
        self.assertEqual(wire, {"temperature": 5.0, "feelsLike": 3.0, "windSpeed": 2.0})


class TestPointTypes(unittest.TestCase):
    def test_request_body_omits_distance(self):
        point = ForecastPoint(lat=1.0, lon=2.0, timestamp=3, distance=4.0)
        self.assertEqual(point.to_request_body(), {"lat": 1.0, "lon": 2.0, "timestamp": 3})

    def test_point_result_ok(self):
        point = ForecastPoint(lat=1.0, lon=2.0, timestamp=3)
        self.assertTrue(PointResult(0, point, Outcome.OK).ok)
        self.assertFalse(PointResult(0, point, Outcome.API_ERROR, status_code=500).ok)


if __name__ == "__main__":
    unittest.main()
