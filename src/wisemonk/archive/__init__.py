"""Archive backends — where busy conversations are moved to."""
