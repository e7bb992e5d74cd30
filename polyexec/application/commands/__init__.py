from .execute_code import ExecutionGateway

__all__ = ["ExecutionGateway"]
