"""Normalization layers applied to encoder outputs."""

import torch
import torch.nn as nn


def stop_gradient(x: torch.Tensor) -> torch.Tensor:
    """Treat `x` as a constant: its value flows forward, no gradient flows back."""
    return x.detach()


class LayerNorm(nn.Module):
    """
    Layer normalization (Ba et al., 2016).

        y = (x - E[x]) / sqrt(Var[x] + eps) * w + b

    Statistics are taken over the last dimension.
    """

    def __init__(self, size: int, eps: float = 1e-5):
        super().__init__()
        self.size = size
        self.eps = eps
        self.weight = nn.Parameter(torch.ones(size))
        self.bias = nn.Parameter(torch.zeros(size))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        mean = x.mean(dim=-1, keepdim=True)
        dev = x - mean
        std = torch.sqrt(dev.square().mean(dim=-1, keepdim=True) + self.eps)
        return dev / std * self.weight + self.bias

    def extra_repr(self):
        return f'size={self.size}, eps={self.eps}'


class AdaNorm(nn.Module):
    """
    Adaptive normalization without learned gain and bias (Xu et al., 2019).

        y = (x - E[x]) / (std(x) + eps)
        z = y * stop_gradient(C * (1 - k * y))

    The scaling term is detached, so it acts as an input-dependent constant.
    """

    def __init__(self, scale: float, k: float = 0.1, eps: float = 1e-10):
        super().__init__()
        self.scale = scale
        self.k = k
        self.eps = eps

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        mean = x.mean(dim=-1, keepdim=True)
        dev = x - mean
        std = torch.sqrt(dev.square().mean(dim=-1, keepdim=True))
        y = dev / (std + self.eps)
        phi = self.scale * (1 - self.k * y)
        return y * stop_gradient(phi)

    def extra_repr(self):
        return f'scale={self.scale}, k={self.k}'
