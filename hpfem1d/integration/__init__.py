from .quadrature import gauss_legendre, line_rule, element_quad_order

__all__ = ["gauss_legendre", "line_rule", "element_quad_order"]
