"""Products that hcdl can download."""

PRODUCTS_LIST = (
    "boundary",
    "consul",
    "nomad",
    "packer",
    "terraform",
    "vagrant",
    "vault",
    "waypoint",
)

__all__ = ["PRODUCTS_LIST"]
