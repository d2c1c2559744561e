"""Cloud sync: adapter, resolver and coordinator."""
