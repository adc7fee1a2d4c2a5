import matplotlib.pyplot as plt
import numpy as np

from hpfem1d import ExactSolution
from hpfem1d.analytic import x
from hpfem1d.io import ConvergenceGraph
from hpfem1d.io.visualization import plot_convergence, plot_mesh, plot_solution


def test_graph_values_and_file(tmp_path):
    g = ConvergenceGraph("error (est)", "ndof", "rel. error")
    assert len(g) == 0 and g.values.shape == (0, 2)
    g.add_values(10, 0.5)
    g.add_values(20, 0.125)
    path = g.save(tmp_path / "sub" / "conv.dat")
    data = np.loadtxt(path)
    np.testing.assert_allclose(data, [[10, 0.5], [20, 0.125]])
    with open(path) as fh:
        assert fh.readline().startswith("# ndof rel. error")


def test_plots_return_axes(poisson_space):
    poisson_space.vector_to_solution(np.array([1.0]))
    ax = plot_solution(poisson_space, exact_sol=ExactSolution(1 - x ** 2))
    assert len(ax.get_lines()) == 3
    ax = plot_mesh(poisson_space, err_array=np.array([0.2, 0.1]))
    assert len(ax.patches) == 2
    g = ConvergenceGraph("est", "ndof", "err")
    g.add_values(1, 1.0)
    g.add_values(3, 0.1)
    assert plot_convergence(g).get_ylabel() == "err"
    assert g.plot().get_xlabel() == "ndof"
    plt.close("all")
