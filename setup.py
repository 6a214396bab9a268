from setuptools import find_packages, setup

package_name = 'ws_echo'

setup(
    name=package_name,
    version='0.1.0',
    packages=find_packages(exclude=['test']),
    install_requires=['websockets>=14.0'],
    python_requires='>=3.9',
    zip_safe=True,
    description='Minimal WebSocket echo server',
    license='Apache-2.0',
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'ws_echo_node = ws_echo.echo_node:main',
        ],
    },
)
