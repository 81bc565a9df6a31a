"""Domain value types shared by services and store adapters."""
