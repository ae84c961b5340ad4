import taichi as ti


# Particle-node pairs are flattened: the pair (np, ln) lives at np * total_nodes + ln.
# LnID holds the arena index of the node and contribution[pair, d] the value
# carried to component d of that node.

@ti.kernel
def kernel_scatter_atomic_p2g(total_nodes: int, particleNum: int, ncomponents: int, LnID: ti.types.ndarray(), contribution: ti.types.ndarray(), nodal: ti.types.ndarray()):
    for np in range(particleNum):
        offset = np * total_nodes
        for ln in range(offset, offset + total_nodes):
            nodeID = LnID[ln]
            for d in range(ncomponents):
                nodal[nodeID, d] += contribution[ln, d]


@ti.kernel
def kernel_scatter_reduction_p2g(total_nodes: int, particleNum: int, ncomponents: int, nchunks: int, chunk_size: int, LnID: ti.types.ndarray(), contribution: ti.types.ndarray(), buffer: ti.types.ndarray()):
    # every chunk owns buffer[chunk, :, :] and walks its particles in order
    for chunk in range(nchunks):
        start = chunk * chunk_size
        end = ti.min(start + chunk_size, particleNum)
        for np in range(start, end):
            offset = np * total_nodes
            for ln in range(offset, offset + total_nodes):
                nodeID = LnID[ln]
                for d in range(ncomponents):
                    buffer[chunk, nodeID, d] += contribution[ln, d]


@ti.kernel
def kernel_merge_reduction(nodeNum: int, ncomponents: int, nchunks: int, buffer: ti.types.ndarray(), nodal: ti.types.ndarray()):
    for ng, d in ti.ndrange(nodeNum, ncomponents):
        total = 0.
        for chunk in range(nchunks):
            total += buffer[chunk, ng, d]
        nodal[ng, d] += total


@ti.kernel
def kernel_interpolate_g2p(total_nodes: int, particleNum: int, ncomponents: int, LnID: ti.types.ndarray(), shapefn: ti.types.ndarray(), nodal: ti.types.ndarray(), particle_value: ti.types.ndarray()):
    for np, d in ti.ndrange(particleNum, ncomponents):
        offset = np * total_nodes
        value = 0.
        for ln in range(offset, offset + total_nodes):
            value += shapefn[ln] * nodal[LnID[ln], d]
        particle_value[np, d] = value
