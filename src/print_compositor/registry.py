"""
Registry pattern utility for creating lookup tables.

This module provides the ``new_registry`` function which creates a registry
dictionary and a decorator for registering handlers. print_compositor uses it
to map each :py:class:`~print_compositor.constants.BlendMode` to its blend
function.

Usage example::

    from print_compositor.registry import new_registry

    BLEND_FUNC, register = new_registry(attribute="blend_mode")

    @register(BlendMode.MULTIPLY)
    def multiply(Cb, Cs):
        return Cb * Cs

    blend_fn = BLEND_FUNC[BlendMode.MULTIPLY]
"""

from typing import Any, Callable, Tuple, TypeVar, Union

T = TypeVar("T")


def new_registry(attribute: Union[str, None] = None) -> Tuple[dict, Callable]:
    """
    Returns an empty dict and a @register decorator.

    :param attribute: Optional attribute name to set on registered objects.
                     The key will be stored as this attribute on the object.
    :return: Tuple of (registry_dict, register_decorator)
    """
    registry = {}

    def register(key: Any) -> Callable[[Callable[..., T]], Callable[..., T]]:
        def decorator(func: Callable[..., T]) -> Callable[..., T]:
            registry[key] = func
            if attribute:
                setattr(func, attribute, key)
            return func

        return decorator

    return registry, register
