import unittest

from rideweather.errors import GPXError
from rideweather.gpx_parser import (
    estimate_track_points,
    has_elevation_data,
    has_timestamp_data,
    has_valid_coordinates,
    haversine_km,
    parse_gpx,
    validate_gpx_content,
    validate_gpx_file,
)

TRACK_GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="rideweather-tests" xmlns="http://www.topografix.com/GPX/1/1">
  <trk>
    <name>Morning Loop</name>
    <trkseg>
      <trkpt lat="45.0" lon="-122.0"><ele>100</ele><time>2024-06-01T08:00:00Z</time></trkpt>
      <trkpt lat="45.0" lon="-121.9"><ele>150</ele><time>2024-06-01T08:20:00Z</time></trkpt>
      <trkpt lat="45.0" lon="-121.8"><ele>120</ele><time>2024-06-01T08:40:00Z</time></trkpt>
    </trkseg>
  </trk>
</gpx>
"""

ROUTE_GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="rideweather-tests" xmlns="http://www.topografix.com/GPX/1/1">
  <rte>
    <name>Planned Climb</name>
    <rtept lat="46.0" lon="7.0"></rtept>
    <rtept lat="46.1" lon="7.0"></rtept>
  </rte>
</gpx>
"""

EMPTY_TRACK_GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="rideweather-tests" xmlns="http://www.topografix.com/GPX/1/1">
  <trk><name>Nothing</name><trkseg></trkseg></trk>
  <!-- <trkpt> placeholder so the cheap content checks pass -->
</gpx>
"""


class TestHaversine(unittest.TestCase):
    def test_zero_distance(self):
        self.assertEqual(haversine_km(45.0, -122.0, 45.0, -122.0), 0.0)

    def test_one_degree_of_latitude(self):
        self.assertAlmostEqual(haversine_km(0.0, 0.0, 1.0, 0.0), 111.195, places=2)


class TestValidateGpxFile(unittest.TestCase):
    def test_accepts_gpx_upload(self):
        validate_gpx_file("ride.GPX", 2048)

    def test_rejects_missing_file(self):
        with self.assertRaisesRegex(GPXError, "No file provided"):
            validate_gpx_file(None, 10)

    def test_rejects_wrong_extension(self):
        with self.assertRaisesRegex(GPXError, "Expected .gpx but received .fit"):
            validate_gpx_file("ride.fit", 10)
        with self.assertRaisesRegex(GPXError, "no extension"):
            validate_gpx_file("ride", 10)

    def test_rejects_large_and_empty(self):
        with self.assertRaisesRegex(GPXError, "too large"):
            validate_gpx_file("ride.gpx", 11, max_bytes=10)
        with self.assertRaisesRegex(GPXError, "File is empty"):
            validate_gpx_file("ride.gpx", 0)


class TestValidateGpxContent(unittest.TestCase):
    def test_valid_content_passes(self):
        validate_gpx_content(TRACK_GPX)
        validate_gpx_content(ROUTE_GPX)

    def test_rejections(self):
        cases = [
            ("", "Empty GPX content"),
            ("<gpx></gpx>", "too short"),
            ("x" * 120, "Missing <gpx> tag"),
            ("<gpx>" + "x" * 120, "Missing closing </gpx> tag"),
            ("<gpx>" + "x" * 120 + "</gpx>", "No track or route points"),
            ("<?xml bad?><gpx><trkpt/>" + "x" * 120 + "</gpx>", "Malformed XML declaration"),
        ]
        for content, message in cases:
            with self.subTest(message=message):
                with self.assertRaisesRegex(GPXError, message):
                    validate_gpx_content(content)

    def test_content_helpers(self):
        self.assertTrue(has_valid_coordinates(TRACK_GPX))
        self.assertFalse(has_valid_coordinates("<gpx><trkpt/></gpx>"))
        self.assertEqual(estimate_track_points(TRACK_GPX), 3)
        self.assertEqual(estimate_track_points(ROUTE_GPX), 2)
        self.assertTrue(has_elevation_data(TRACK_GPX))
        self.assertFalse(has_elevation_data(ROUTE_GPX))
        self.assertTrue(has_timestamp_data(TRACK_GPX))
        self.assertFalse(has_timestamp_data(ROUTE_GPX))


class TestParseGpx(unittest.TestCase):
    def test_track_points_distance_and_elevation(self):
        data = parse_gpx(TRACK_GPX)

        self.assertEqual(data.name, "Morning Loop")
        self.assertEqual(len(data.points), 3)
        self.assertEqual(data.points[0].distance, 0.0)
        self.assertAlmostEqual(data.points[1].distance, 7.86, delta=0.05)
        self.assertAlmostEqual(data.total_distance, 15.72, delta=0.1)
        self.assertEqual(data.points[-1].distance, data.total_distance)
        self.assertEqual(data.elevation_gain, 50)
        self.assertEqual(data.elevation_loss, 30)
        self.assertEqual(data.max_elevation, 150)
        self.assertEqual(data.min_elevation, 100)
        self.assertIsNotNone(data.points[0].time)

    def test_route_points_fallback(self):
        data = parse_gpx(ROUTE_GPX)
        self.assertEqual(data.name, "Planned Climb")
        self.assertEqual(len(data.points), 2)
        self.assertAlmostEqual(data.total_distance, 11.12, delta=0.05)
        self.assertIsNone(data.max_elevation)
        self.assertEqual(data.elevation_gain, 0.0)

    def test_no_points(self):
        with self.assertRaisesRegex(GPXError, "No track points found"):
            parse_gpx(EMPTY_TRACK_GPX)

    def test_unparsable_document(self):
        with self.assertRaisesRegex(GPXError, "Error parsing GPX file"):
            parse_gpx("<gpx><trk><trkseg><trkpt lat='1' lon='2'></trkseg></gpx>")


if __name__ == "__main__":
    unittest.main()
