"""Local Jacobians and global assembly of box model residuals."""
