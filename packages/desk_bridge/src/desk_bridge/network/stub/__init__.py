from desk_bridge.network.stub.client import StubGateway

__all__ = ["StubGateway"]
