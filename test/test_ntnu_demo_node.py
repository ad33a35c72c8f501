import logging
import os

import numpy as np
import pytest

pytest.importorskip("rclpy")
pytest.importorskip("tf2_ros")
pytest.importorskip("geometry_msgs")

from geodetic_tf.geodetic_converter import GeodeticConverter  # noqa: E402
from geodetic_tf.ntnu_demo_node import GM17C_BOREHOLE_UTM, SURVEY_POINTS, NtnuDemo, format_vector  # noqa: E402
from geodetic_tf.tf_bridge import TfGeodeticConverter  # noqa: E402
from ros_fakes import FakeBroadcaster, FakeBuffer, FakeNode  # noqa: E402

CONFIG = os.path.join(os.path.dirname(__file__), "..", "config", "ntnu_frames.yaml")
LOGGER_NAME = "test_ntnu_demo_node"


@pytest.fixture
def converter():
  converter = GeodeticConverter(logger=logging.getLogger(LOGGER_NAME))
  assert converter.init_from_file(CONFIG)
  return converter


@pytest.fixture
def tf_buffer():
  return FakeBuffer()


@pytest.fixture
def broadcaster():
  return FakeBroadcaster()


@pytest.fixture
def demo(tf_buffer, broadcaster):
  node = FakeNode(logger_name=LOGGER_NAME)
  tf_converter = TfGeodeticConverter(node, tf_buffer=tf_buffer, broadcaster=broadcaster)
  assert tf_converter.init_from_file(CONFIG)
  return NtnuDemo(tf_converter, node.get_logger())


def test_format_vector_keeps_sixteen_digits():
  assert format_vector((63.41501812345678, 0.5, -1.0)) == "(63.41501812345678, 0.5, -1)"


def test_survey_points_are_on_campus(converter):
  for frame, name, coordinates in SURVEY_POINTS:
    if name == "CornerUTM":
      continue
    enu = converter.convert(frame, coordinates, "ENU_NTNU")
    assert np.linalg.norm(enu[:2]) < 1000.0, name


def test_corner_utm_is_in_zurich(converter):
  (coordinates,) = [c for _, name, c in SURVEY_POINTS if name == "CornerUTM"]
  lat, lon, _ = converter.convert("UTM", coordinates, "GPS")
  assert lat == pytest.approx(47.37, abs=0.1)
  assert lon == pytest.approx(8.55, abs=0.1)


def test_borehole_in_gps(converter):
  lat, lon, alt = converter.convert("UTM", GM17C_BOREHOLE_UTM, "GPS")
  assert lat == pytest.approx(63.4157, abs=0.005)
  assert lon == pytest.approx(10.403, abs=0.005)
  assert alt == pytest.approx(88.152, abs=1e-6)


def test_borehole_conversions_are_logged(demo, caplog):
  with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
    demo.log_borehole_conversions()
  messages = [record.getMessage() for record in caplog.records if record.name == LOGGER_NAME]
  assert any(message.startswith("GM17C_borehole in WGS84 = (63.") for message in messages)
  assert any(message.startswith("GM17C_borehole in ETRS89/EUREF89 = ") for message in messages)
  assert "Frames not loaded." not in messages


def test_borehole_warns_when_frames_are_missing(demo, caplog):
  assert demo.converter.remove_frame("ENU_NTNU")
  caplog.clear()
  with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
    demo.log_borehole_conversions()
  warnings = [record.getMessage() for record in caplog.records if record.levelno == logging.WARNING]
  assert warnings == ["Frames not loaded."]


def test_body_origin_needs_tf(demo, caplog):
  with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
    assert demo.log_body_origin() is None
  assert "Could not convert the body origin to UTM." in caplog.messages


def test_body_origin_in_utm(demo, tf_buffer):
  tf_buffer.add("enu", "body", (14.58, 6.64, 0.0))
  utm_body = demo.log_body_origin()
  expected = demo.converter.convert("ENU_NTNU", (14.58, 6.64, 0.0), "UTM")
  np.testing.assert_allclose(utm_body.coordinates, expected, atol=1e-6)


def test_publish_survey_points(demo, broadcaster):
  results = demo.publish_survey_points()
  names = [name for _, name, _ in SURVEY_POINTS]
  assert results == {name: True for name in names}
  assert [msg.child_frame_id for msg in broadcaster.sent[-1]] == names
  assert all(msg.header.frame_id == "enu" for msg in broadcaster.sent[-1])


def test_publish_survey_points_without_mapping(demo, broadcaster):
  assert demo.converter.remove_frame("ENU_NTNU")
  results = demo.publish_survey_points()
  assert not any(results.values())
  assert broadcaster.sent == []
