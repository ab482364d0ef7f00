"""
Unit tests for position change detection.
"""

import pytest
from pathlib import Path
import sys

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from contracts.validation import Aircraft
from relay.detector import has_moved
from relay.errors import IdentityError


def aircraft(**fields) -> Aircraft:
    data = {"flight": "a1", "lat": 1.1, "lon": 2.2, "alt_geom": 3, "alt_baro": 5, "track": 4.1}
    data.update(fields)
    return Aircraft.model_validate(data)


class TestHasMoved:
    """Test the has_moved predicate."""

    def test_identical(self):
        """Identical records never report a move."""
        assert has_moved(aircraft(), aircraft()) is False

    @pytest.mark.parametrize("field,value", [
        ("lat", 2.0),
        ("lon", 3.0),
        ("alt_geom", 4),
        ("alt_baro", 6),
        ("track", 5.0),
    ])
    def test_moved(self, field, value):
        """A change in any position field is a move."""
        assert has_moved(aircraft(), aircraft(**{field: value})) is True

    @pytest.mark.parametrize("field,value", [
        ("rssi", -12.5),
        ("messages", 9000),
        ("seen", 42.0),
        ("seen_pos", 12.0),
        ("squawk", "7700"),
        ("gs", 300.0),
        ("timestamp", 1714765200000000),
        ("station_name", "elsewhere"),
        ("mlat", ["lat", "lon"]),
    ])
    def test_telemetry_does_not_count(self, field, value):
        """Telemetry changes never flip the result."""
        assert has_moved(aircraft(), aircraft(**{field: value})) is False
        assert has_moved(aircraft(track=9.0), aircraft(**{field: value})) is True

    def test_no_tolerance(self):
        """Comparison is exact."""
        assert has_moved(aircraft(lat=51.5), aircraft(lat=51.5000001)) is True

    def test_different_aircraft(self):
        """Comparing two different aircraft is an error."""
        with pytest.raises(IdentityError):
            has_moved(aircraft(flight="a1"), aircraft(flight="a2"))

    @pytest.mark.parametrize("a,b", [
        ("", ""),
        ("a1", ""),
        ("", "a1"),
    ])
    def test_unknown_aircraft(self, a, b):
        """Records without a flight identity cannot be compared."""
        with pytest.raises(IdentityError):
            has_moved(aircraft(flight=a), aircraft(flight=b))
