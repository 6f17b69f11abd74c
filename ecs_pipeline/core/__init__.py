"""Core derivations shared by the stacks: sizing, networking and identity."""
