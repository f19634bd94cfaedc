"""
Garage Manager - An interactive menu for running a single-node Garage S3 server.

This package provides utilities for:
- Generating the Garage configuration and compose descriptor
- Driving the container through docker or docker-compose
- Running garage CLI commands inside the container
- Bucket and access key administration
- Troubleshooting and S3 connectivity checks
"""

__version__ = "0.1.0"
