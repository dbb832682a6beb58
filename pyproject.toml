[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xv6kit"
version = "0.1.0"
description = "A small Unix-style kernel's storage stack and user programs: disk images, buffer cache, redo log, inodes, pipes and simple tools"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "filesystem",
    "inode",
    "buffer-cache",
    "write-ahead-log",
    "disk-image",
    "operating-systems",
    "teaching",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
xv6-mkfs = "xv6kit.mkfs:main"
xv6-grep = "xv6kit.grep:main"
xv6-cat = "xv6kit.programs:cat_main"
xv6-echo = "xv6kit.programs:echo_main"
xv6-ls = "xv6kit.ls:main"

[tool.hatch.build.targets.wheel]
packages = ["xv6kit"]

[tool.pytest.ini_options]
addopts = "-ra"
