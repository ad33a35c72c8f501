#!/usr/bin/env python3
"""
NTNU geodetic demo launch file

Starts:
1. static enu -> body transform (the "body" frame the demo converts to UTM)
2. ntnu_demo_node with config/ntnu_frames.yaml, in its own terminal
   because it waits for enter before publishing

Usage:
    ros2 launch geodetic_tf ntnu_demo.launch.py
    ros2 launch geodetic_tf ntnu_demo.launch.py frames:=/path/to/frames.yaml prefix:=''
"""

import os
from ament_index_python.packages import get_package_share_directory
from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node


def generate_launch_description():
    ld = LaunchDescription()

    default_frames = os.path.join(get_package_share_directory("geodetic_tf"), "config", "ntnu_frames.yaml")

    frames_arg = DeclareLaunchArgument(
        "frames",
        default_value=default_frames,
        description="ROS parameter file with geotf.frames and geotf.tf_mapping",
    )
    prefix_arg = DeclareLaunchArgument(
        "prefix",
        default_value="xterm -e",
        description="Terminal prefix for the demo node (it reads stdin)",
    )
    body_x_arg = DeclareLaunchArgument("body_x", default_value="14.58", description="body x in enu [m]")
    body_y_arg = DeclareLaunchArgument("body_y", default_value="6.64", description="body y in enu [m]")

    ld.add_action(frames_arg)
    ld.add_action(prefix_arg)
    ld.add_action(body_x_arg)
    ld.add_action(body_y_arg)

    body_tf = Node(
        package="tf2_ros",
        executable="static_transform_publisher",
        name="enu_to_body",
        arguments=[
            "--x", LaunchConfiguration("body_x"),
            "--y", LaunchConfiguration("body_y"),
            "--z", "0.0",
            "--frame-id", "enu",
            "--child-frame-id", "body",
        ],
    )
    ld.add_action(body_tf)

    demo_node = Node(
        package="geodetic_tf",
        executable="ntnu_demo_node",
        name="geotf_ntnu_demo",
        output="screen",
        prefix=LaunchConfiguration("prefix"),
        parameters=[LaunchConfiguration("frames")],
    )
    ld.add_action(demo_node)

    return ld
