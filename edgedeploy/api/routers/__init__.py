from . import activations, dns

__all__ = ['activations', 'dns']
