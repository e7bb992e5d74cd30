"""
Kernels

Interpreter sessions implementing IKernelPort. The Jupyter bridge lives in
``polyexec.infrastructure.kernels.jupyter_kernel`` and needs the
``jupyter`` extra, so it is not imported here.
"""

from .python_kernel import PythonKernel
from .shell_kernel import ShellKernel

__all__ = ["PythonKernel", "ShellKernel"]
