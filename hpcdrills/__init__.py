"""Small numerical drills: matrix multiply, sums, Jacobi and Poisson solvers, message passing."""

__version__ = "0.1.0"