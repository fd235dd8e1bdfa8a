"""ROM Shelf backend packages."""
