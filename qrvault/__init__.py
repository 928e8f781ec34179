"""
QRVault Package

Quantum-resistant key and data registry. Core imports are lazily loaded so
that submodules can be used on their own:

    from qrvault.registry import QuantumRegistry, Transaction
    from qrvault.chain import LocalChain
    from qrvault.database import RegistryDatabase
"""

__version__ = "1.0.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'QuantumRegistry':
        from .registry import QuantumRegistry
        return QuantumRegistry
    elif name == 'LocalChain':
        from .chain import LocalChain
        return LocalChain
    elif name == 'RegistryDatabase':
        from .database import RegistryDatabase
        return RegistryDatabase
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'qrvault' has no attribute {name!r}")

__all__ = ['QuantumRegistry', 'LocalChain', 'RegistryDatabase', 'load_config']
