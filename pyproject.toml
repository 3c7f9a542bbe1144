[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nfvtestapp"
version = "0.1.0"
description = "Building blocks for sending, receiving and measuring bursts of fixed-size packets when testing network functions"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "nfv",
    "traffic-generator",
    "udp",
    "raw-sockets",
    "latency",
    "throughput",
    "checksum",
    "cpu-mask",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Benchmark",
    "Topic :: System :: Networking :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cpu-list-to-mask = "nfvtestapp.cpumask:main"

[tool.hatch.build.targets.wheel]
packages = ["nfvtestapp"]

[tool.pytest.ini_options]
addopts = "-ra"
