"""
Command Line Interface
======================

argparse front-end for batch, watch and live modes.
"""
