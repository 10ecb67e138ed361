"""Domain services; every function takes the session and the owner id."""
