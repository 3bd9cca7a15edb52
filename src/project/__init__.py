"""Build collaborator: project files and their restore lock files."""
