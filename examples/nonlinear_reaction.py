"""Example: -u'' + u^3 = f on (0, 2), u(0) = 0, u'(2) = g.

f and g are manufactured from u = sin(3x) * exp(-x).  The right end
carries a natural condition that enters through a surface form.
"""
import logging

import matplotlib.pyplot as plt
import numpy as np
import sympy as sp

from hpfem1d import (
    AdaptivityParameters, AdaptType, ExactSolution, LinearSolverParameters, NewtonParameters,
    Norm, Space, WeakForm, solve_adaptive,
)
from hpfem1d.analytic import x
from hpfem1d.io.visualization import plot_convergence, plot_mesh, plot_solution

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

A, B = 0.0, 2.0
u_expr = sp.sin(3 * x) * sp.exp(-x)
f_expr = -sp.diff(u_expr, x, 2) + u_expr**3
f_rhs = sp.lambdify(x, f_expr, "numpy")
g_right = float(sp.diff(u_expr, x).subs(x, B))


def jacobian(x, weights, u, dudx, v, dvdx, u_prev, du_prevdx, user_data):
    return np.sum((dudx * dvdx + 3.0 * u_prev[0]**2 * u * v) * weights)


def residual(x, weights, u_prev, du_prevdx, v, dvdx, user_data):
    return np.sum((du_prevdx[0] * dvdx + (u_prev[0]**3 - user_data["f"](x)) * v) * weights)


def residual_right(x, u_prev, du_prevdx, v, dvdx, user_data):
    return -user_data["g"] * v


def main():
    space = Space(A, B, 4, p_init=1)
    space.set_bc_left_dirichlet(0, 0.0)
    space.set_bc_right_natural(0, g_right)

    wf = WeakForm(user_data={"f": f_rhs, "g": space.get_bc("right", 0).value})
    wf.add_matrix_form(jacobian)
    wf.add_vector_form(residual)
    wf.add_vector_form_surf(residual_right, "right")

    params = AdaptivityParameters(adapt_type=AdaptType.HP, threshold=0.7, norm=Norm.H1,
                                  tol_err_rel=1e-4, max_steps=20)
    exact = ExactSolution(u_expr)
    result = solve_adaptive(
        space, wf,
        adapt_params=params,
        newton_coarse=NewtonParameters(newton_tol=1e-8),
        newton_ref=NewtonParameters(newton_tol=1e-8),
        lin_params=LinearSolverParameters(backend="scipy"),
        exact_sol=exact,
        n_workers=4,
    )

    for s in result.steps:
        exact_str = f"{s.err_exact_rel * 100:.4g} %" if s.err_exact_rel is not None else "-"
        print(f"step {s.step:2d}: ndof {s.ndof_coarse:4d}, est {s.err_est_rel * 100:.4g} %, exact {exact_str}")
    result.save_graphs("conv")

    fig, axes = plt.subplots(1, 3, figsize=(14, 4))
    plot_solution(result.space, ax=axes[0], exact_sol=exact)
    plot_mesh(result.space, ax=axes[1])
    plot_convergence(result.graphs["conv_dof_est"], ax=axes[2])
    plot_convergence(result.graphs["conv_dof_exact"], ax=axes[2])
    fig.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
