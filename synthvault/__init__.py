"""
Collateralized synthetic-asset issuance engine.
"""
