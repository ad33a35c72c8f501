import os
from glob import glob
from setuptools import find_packages, setup

package_name = 'geodetic_tf'

setup(
    name=package_name,
    version='0.1.0',
    packages=find_packages(exclude=['test']),
    data_files=[
        ('share/ament_index/resource_index/packages',
            ['resource/' + package_name]),
        ('share/' + package_name, ['package.xml']),
        (os.path.join('share', package_name, 'launch'), glob('launch/*.launch.py')),
        (os.path.join('share', package_name, 'config'), glob('config/*.yaml')),
    ],
    install_requires=['setuptools', 'numpy', 'scipy', 'pyyaml', 'pyproj>=3.1'],
    zip_safe=True,
    maintainer='ritz',
    maintainer_email='riddheshmore311@gmail.com',
    description='Geodetic frame conversions (UTM, GPS, ETRS89, ENU) bridged to TF',
    license='MIT',
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'ntnu_demo_node = geodetic_tf.ntnu_demo_node:main',
        ],
    },
)
