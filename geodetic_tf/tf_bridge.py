#!/usr/bin/env python3
from typing import Optional

import tf2_ros
from rclpy.duration import Duration
from rclpy.time import Time
from geometry_msgs.msg import TransformStamped

from geodetic_tf.geodetic_converter import GeodeticConverter
from geodetic_tf.geo_utils.coordinates import Pose3D
from geodetic_tf.geo_utils.recursive_config import unflatten_parameters

TF_EXCEPTIONS = (tf2_ros.LookupException, tf2_ros.ConnectivityException, tf2_ros.ExtrapolationException)


def transform_to_pose(transform) -> Pose3D:
  """geometry_msgs/Transform -> Pose3D"""
  t = transform.translation
  q = transform.rotation
  return Pose3D.from_translation_quaternion((t.x, t.y, t.z), (q.x, q.y, q.z, q.w))


def pose_to_transform_stamped(pose: Pose3D, parent_frame: str, child_frame: str, stamp) -> TransformStamped:
  translation, quaternion = pose.as_translation_quaternion()
  msg = TransformStamped()
  msg.header.stamp = stamp
  msg.header.frame_id = parent_frame
  msg.child_frame_id = child_frame
  msg.transform.translation.x = float(translation[0])
  msg.transform.translation.y = float(translation[1])
  msg.transform.translation.z = float(translation[2])
  msg.transform.rotation.x = float(quaternion[0])
  msg.transform.rotation.y = float(quaternion[1])
  msg.transform.rotation.z = float(quaternion[2])
  msg.transform.rotation.w = float(quaternion[3])
  return msg


class TfGeodeticConverter(GeodeticConverter):
  """
  GeodeticConverter bound to a ROS 2 node.
  Moves poses between geo frames and TF frames through the TF mapping
  (one geo frame declared equal to one TF frame) and publishes geo
  locations as static TF frames.
  """
  def __init__(self, node, tf_buffer=None, broadcaster=None, lookup_timeout=1.0):
    super().__init__(logger=node.get_logger())
    self.node = node
    self.lookup_timeout = lookup_timeout

    # Share an existing buffer if given, otherwise listen ourselves.
    # Lookups block, so the node must be spun from another thread.
    if tf_buffer is None:
      tf_buffer = tf2_ros.Buffer(cache_time=Duration(seconds=10.0))
      self.tf_listener = tf2_ros.TransformListener(tf_buffer, node)
    self.tf_buffer = tf_buffer

    if broadcaster is None:
      broadcaster = tf2_ros.StaticTransformBroadcaster(node)
    self.static_broadcaster = broadcaster
    self._published = {}

  def init_from_ros_params(self, prefix="geotf"):
    """
    Load frames from parameters below `prefix` (needs a node created with
    automatically_declare_parameters_from_overrides=True), e.g.
    geotf.frames.GPS.type, geotf.tf_mapping.tf. A `<prefix>.config_file`
    parameter names a YAML file to load first.
    """
    params = self.node.get_parameters_by_prefix(prefix)
    config = unflatten_parameters({name: param.value for name, param in params.items()})

    ok = True
    config_file = config.pop("config_file", None)
    if config_file:
      self.logger.info(f"Loading geo frames from {config_file}")
      ok = self.init_from_file(config_file, prefix=prefix)
    if config.get("frames") or config.get("tf_mapping"):
      ok = self.init_from_dict(config) and ok
    elif not config_file:
      self.logger.warning(f"No geo frames found under parameter prefix '{prefix}'.")
      return False
    return ok

  def _lookup(self, target_frame, source_frame) -> Optional[Pose3D]:
    """Pose of `source_frame` in `target_frame`, None if TF cannot provide it."""
    try:
      trans = self.tf_buffer.lookup_transform(
        target_frame, source_frame, Time(), timeout=Duration(seconds=self.lookup_timeout)
      )
    except TF_EXCEPTIONS as e:
      self.logger.warning(f"TF lookup {source_frame} -> {target_frame} failed: {e}")
      return None
    return transform_to_pose(trans.transform)

  def _require_mapping(self):
    if self.tf_mapping is None:
      self.logger.warning("No TF mapping configured, cannot convert between geo and TF frames.")
    return self.tf_mapping

  def convert_from_tf(self, tf_frame, pose: Pose3D, output_frame) -> Optional[Pose3D]:
    """Convert a pose given in TF frame `tf_frame` into geo frame `output_frame`."""
    mapping = self._require_mapping()
    if mapping is None:
      return None
    geo_tf_frame, mapped_tf_frame = mapping
    if not self.can_convert(geo_tf_frame, output_frame):
      self.logger.warning(f"Cannot convert from {geo_tf_frame} to {output_frame}.")
      return None

    mapped_from_tf = self._lookup(mapped_tf_frame, tf_frame)
    if mapped_from_tf is None:
      return None
    return self.convert_pose(geo_tf_frame, mapped_from_tf @ pose, output_frame)

  def convert_to_tf(self, input_frame, pose: Pose3D, tf_frame) -> Optional[Pose3D]:
    """Convert a pose given in geo frame `input_frame` into TF frame `tf_frame`."""
    mapping = self._require_mapping()
    if mapping is None:
      return None
    geo_tf_frame, mapped_tf_frame = mapping
    if not self.can_convert(input_frame, geo_tf_frame):
      self.logger.warning(f"Cannot convert from {input_frame} to {geo_tf_frame}.")
      return None

    tf_from_mapped = self._lookup(tf_frame, mapped_tf_frame)
    if tf_from_mapped is None:
      return None
    return tf_from_mapped @ self.convert_pose(input_frame, pose, geo_tf_frame)

  def publish_as_tf(self, input_frame, pose: Pose3D, frame_name) -> bool:
    """
    Publish a geo pose as static TF frame `frame_name`, child of the mapped TF frame.
    """
    mapping = self._require_mapping()
    if mapping is None:
      return False
    geo_tf_frame, mapped_tf_frame = mapping
    if not self.can_convert(input_frame, geo_tf_frame):
      self.logger.warning(f"Cannot publish {frame_name}: no conversion from {input_frame} to {geo_tf_frame}.")
      return False

    pose_in_tf = self.convert_pose(input_frame, pose, geo_tf_frame)
    stamp = self.node.get_clock().now().to_msg()
    self._published[frame_name] = pose_to_transform_stamped(pose_in_tf, mapped_tf_frame, frame_name, stamp)
    # A new static message replaces the latched one, so always send the full set
    self.static_broadcaster.sendTransform(list(self._published.values()))
    self.logger.info(f"Published {frame_name} in {mapped_tf_frame} at {pose_in_tf}")
    return True

  def published_frames(self):
    return list(self._published)
