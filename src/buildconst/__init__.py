"""buildconst: guarded generation of build-time constants modules."""
