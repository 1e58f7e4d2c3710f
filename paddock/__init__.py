"""Racing-management weekend simulator."""
