"""HTTP surface for guardian staking."""
