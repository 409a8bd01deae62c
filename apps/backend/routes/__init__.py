"""HTTP routers for the Tour Compare backend."""
