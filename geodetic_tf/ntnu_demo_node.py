#!/usr/bin/env python3
"""
NTNU geodetic demo

1. Load geo frames from parameters (see config/ntnu_frames.yaml)
2. Convert the GM17C borehole from UTM to GPS, ETRS89 and ENU_NTNU
3. Wait for the user to start rviz
4. Convert the origin of TF frame "body" to UTM
5. Publish surveyed points as static TF frames

Usage:
    ros2 launch geodetic_tf ntnu_demo.launch.py
"""

import threading
import time
import rclpy
from rclpy.executors import MultiThreadedExecutor
from rclpy.node import Node

from geodetic_tf.geo_utils.coordinates import Pose3D
from geodetic_tf.tf_bridge import TfGeodeticConverter

# UTM and ETRS89 in the NTNU configuration are northing first
GM17C_BOREHOLE_UTM = (7032663.7528, 570092.5139, 88.152)

BOREHOLE_TARGETS = [
  ("GPS", "WGS84"),
  ("ETRS89", "ETRS89/EUREF89"),
  ("ENU_NTNU", "ENU frame based on NTNU electronics department"),
]

# (geo frame, TF frame name, coordinates in the geo frame's axis order)
SURVEY_POINTS = [
  ("UTM", "CornerUTM", (5247291.0, 465727.0, 489.619)),
  # P5 nail and the GM17E bolt in the top of the wall
  ("GPS", "P5_nail", (63.415018, 10.407384, 79.608)),
  ("GPS", "GM17E", (63.417629, 10.401332, 87.002)),
  ("ETRS89", "P1", (7032516.8044, 570406.8605, 80.3184)),
  ("ETRS89", "P2", (7032503.4822, 570413.3669, 80.1282)),
  ("ETRS89", "P3", (7032512.5002, 570431.9676, 80.4122)),
  ("ETRS89", "P4", (7032526.0900, 570425.3519, 80.6571)),
]


def format_vector(vector):
  return "(" + ", ".join(f"{value:.16g}" for value in vector) + ")"


class NtnuDemo:
  """The demo steps, run against a TfGeodeticConverter."""
  def __init__(self, converter: TfGeodeticConverter, logger):
    self.converter = converter
    self.logger = logger

  def log_borehole_conversions(self):
    for frame, label in BOREHOLE_TARGETS:
      if self.converter.can_convert("UTM", frame):
        converted = self.converter.convert("UTM", GM17C_BOREHOLE_UTM, frame)
        self.logger.info(f"GM17C_borehole in {label} = {format_vector(converted)}")
      else:
        self.logger.warning("Frames not loaded.")

  def log_body_origin(self):
    # "body" has no geo frame of its own; it reaches UTM through the TF mapping
    utm_body = self.converter.convert_from_tf("body", Pose3D(), "UTM")
    if utm_body is None:
      self.logger.warning("Could not convert the body origin to UTM.")
      return None
    self.logger.info(f"UTM coordinates of body origin: {format_vector(utm_body.coordinates)}")
    return utm_body

  def publish_survey_points(self):
    results = {}
    for frame, name, coordinates in SURVEY_POINTS:
      ok = self.converter.publish_as_tf(frame, Pose3D(coordinates), name)
      self.logger.info(f"Publishing {name} from {frame}: {ok}")
      results[name] = ok
    return results


class NtnuDemoNode(Node):
  def __init__(self):
    super().__init__('geotf_ntnu_demo', automatically_declare_parameters_from_overrides=True)

    self.converter = TfGeodeticConverter(self)
    if not self.converter.init_from_ros_params():
      self.get_logger().warning("Some geo frames could not be loaded.")
    self.converter.write_debug_info()
    self.demo = NtnuDemo(self.converter, self.get_logger())


def main(args=None):
  rclpy.init(args=args)
  node = NtnuDemoNode()

  # Spin in the background so TF keeps arriving while we wait for input
  executor = MultiThreadedExecutor()
  executor.add_node(node)
  spin_thread = threading.Thread(target=executor.spin, daemon=True)
  spin_thread.start()

  try:
    # Wait for TF to set up
    time.sleep(1.0)
    node.demo.log_borehole_conversions()

    node.get_logger().info("Please start rviz for visualization and press enter.")
    input()

    node.demo.log_body_origin()
    node.demo.publish_survey_points()
    spin_thread.join()
  except KeyboardInterrupt:
    pass
  finally:
    executor.shutdown()
    node.destroy_node()
    try:
      rclpy.shutdown()
    except Exception:
      pass  # Already shut down by signal handler


if __name__ == '__main__':
  main()
