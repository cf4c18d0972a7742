"""Pure domain layer: clock, DTOs, validation. Zero I/O."""
