import pytest

from geodetic_tf.geo_utils.recursive_config import FrameConfig, unflatten_parameters, unwrap_ros_parameters


def write(path, text):
  path.write_text(text, encoding="UTF-8")
  return str(path)


def test_extends_merges_recursively(tmp_path):
  write(tmp_path / "base.yaml", """
geotf:
  frames:
    GPS: {type: GCSCode, code: WGS84}
    UTM: {type: UTM, zone: 32, hemisphere: N}
""")
  child = write(tmp_path / "child.yaml", """
extends: base.yaml
geotf:
  frames:
    UTM: {zone: 33}
""")
  config = FrameConfig(child)
  frames = config.section("geotf.frames")
  assert frames["GPS"]["code"] == "WGS84"
  assert frames["UTM"] == {"type": "UTM", "zone": 33, "hemisphere": "N"}
  assert "extends" not in config


def test_recursive_extends_raises(tmp_path):
  write(tmp_path / "a.yaml", "extends: b.yaml\n")
  write(tmp_path / "b.yaml", "extends: a.yaml\n")
  with pytest.raises(ValueError):
    FrameConfig(str(tmp_path / "a.yaml"))


def test_missing_file_is_empty(tmp_path):
  config = FrameConfig(str(tmp_path / "nothing"))
  assert config.get_config() == {}
  assert config.section("geotf") == {}


def test_ros_parameter_file_is_unwrapped(tmp_path):
  path = write(tmp_path / "params.yaml", """
/**:
  ros__parameters:
    geotf:
      tf_mapping: {geo_tf: ENU, tf: enu}
""")
  assert FrameConfig(path).section("geotf.tf_mapping") == {"geo_tf": "ENU", "tf": "enu"}


def test_plain_dict_is_not_unwrapped():
  cfg = {"geotf": {"frames": {}}}
  assert unwrap_ros_parameters(cfg) is cfg


def test_unflatten_parameters():
  nested = unflatten_parameters({
    "frames.GPS.type": "GCSCode",
    "frames.GPS.code": "WGS84",
    "tf_mapping.tf": "enu",
  })
  assert nested == {"frames": {"GPS": {"type": "GCSCode", "code": "WGS84"}}, "tf_mapping": {"tf": "enu"}}
