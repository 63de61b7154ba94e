"""
Electricity bridge package for the P1-to-InfluxDB pipeline.

Accepts DSMR P1 telegrams forwarded over TCP, joins them with SolarEdge
production readings read over Modbus TCP, derives net usage, and writes one
``energy`` measurement per pass to InfluxDB.

CHANGELOG:
- 2026-03-02: Initial creation (STORY-001)

TODO:
- None
"""
