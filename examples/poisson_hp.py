"""Example: -u'' = 2 on (-1, 1), u(-1) = u(1) = 0.

The exact solution 1 - x^2 is found after one hp step; both elements are
p-refined.
"""
import logging

import matplotlib.pyplot as plt
import numpy as np

from hpfem1d import (
    AdaptivityParameters, AdaptType, ExactSolution, NewtonParameters, Norm, Space, WeakForm,
    solve_adaptive,
)
from hpfem1d.analytic import x
from hpfem1d.io.visualization import plot_mesh, plot_solution

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.FileHandler("application.log", mode="w"), logging.StreamHandler()],
)

# --- Problem data ---
NELEM = 2
A, B = -1.0, 1.0
P_INIT = 1


def f(x):
    return 2.0


def jacobian(x, weights, u, dudx, v, dvdx, u_prev, du_prevdx, user_data):
    return np.sum(dudx * dvdx * weights)


def residual(x, weights, u_prev, du_prevdx, v, dvdx, user_data):
    return np.sum((du_prevdx[0] * dvdx - f(x) * v) * weights)


def main():
    space = Space(A, B, NELEM, p_init=P_INIT)
    space.set_bc_left_dirichlet(0, 0.0)
    space.set_bc_right_dirichlet(0, 0.0)

    wf = WeakForm()
    wf.add_matrix_form(jacobian)
    wf.add_vector_form(residual)

    params = AdaptivityParameters(adapt_type=AdaptType.HP, threshold=0.7, norm=Norm.H1, tol_err_rel=1e-5)
    exact = ExactSolution(1 - x**2)
    result = solve_adaptive(
        space, wf,
        adapt_params=params,
        newton_coarse=NewtonParameters(newton_tol=1e-6, max_newton_iter=150),
        newton_ref=NewtonParameters(newton_tol=1e-6, max_newton_iter=150),
        exact_sol=exact,
    )

    kinds = [r.kind for r in result.steps[0].refinements]
    print(f"Refinements in step 1: {kinds}")
    print(f"Converged: {result.converged}, N_dof = {result.space.get_num_dofs()}")
    for path in result.save_graphs("."):
        print(f"Convergence graph written to {path}")

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(10, 4))
    plot_solution(result.space, ax=ax1, exact_sol=exact)
    plot_mesh(result.space, ax=ax2)
    fig.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
