"""Image-access collaborator for image tar files."""
