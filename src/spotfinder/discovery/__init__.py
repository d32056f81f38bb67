"""Pure discovery engines: proximity, clues, snap and scan."""
