"""Material laws and boundary condition types of the box models."""
