"""Table-of-contents import services."""
