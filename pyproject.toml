[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tareas"
version = "0.1.0"
description = "Pure-Python PNG, JPEG, BMP, TGA and HDR writers, RGB image filters and ASCII art, a text dungeon crawler and a ride-graph reader"
requires-python = ">=3.10"
dependencies = [
    "pillow",
]
keywords = [
    "png",
    "jpeg",
    "bmp",
    "tga",
    "hdr",
    "deflate",
    "ascii-art",
    "image-filters",
    "text-adventure",
    "graph",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
    "Topic :: Games/Entertainment :: Role-Playing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
tareas-imaging = "tareas.imaging:main"
tareas-rides = "tareas.rides:main"
tareas-game = "tareas.game:main"

[tool.hatch.build.targets.wheel]
packages = ["tareas"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
