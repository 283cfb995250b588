from setuptools import setup, find_packages

setup(
    name='mirror_tool',
    version='1.2.0',
    description='单向目录镜像工具',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.9',
    install_requires=[
        'xxhash>=3.0.0',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'mirror-tool=mirror_tool.cli.controller:main',
        ]
    }
)
