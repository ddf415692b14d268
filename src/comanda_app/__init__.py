"""Back-office JSON API for the chefcomanda restaurant POS."""
