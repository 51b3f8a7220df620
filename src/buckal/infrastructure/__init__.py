"""Infrastructure layer — files, subprocess probes, snapshots, graph checks.

This layer depends on stdlib, the domain layer, and third-party libs
(NetworkX). It must never import from services, commands, or output.
"""
