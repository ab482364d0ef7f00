"""
ADS-B Relay

Relays aircraft whose position changed from a receiver's aircraft.json
snapshots to a Kafka topic, expiring aircraft that are no longer seen.
"""
