"""Package repository clients."""
