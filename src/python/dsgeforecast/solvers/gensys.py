import logging

import numpy as np
from scipy.linalg import qz, ordqz, LinAlgError

from ..errors import SolutionDoesNotExist, SolutionNotUnique, NumericalDegeneracy

logger = logging.getLogger(__name__)

REALSMALL = np.sqrt(np.finfo(float).eps) * 10


def _svd_bigev(mat):
    """
    SVD keeping only singular values above REALSMALL.
    Handles empty blocks (no unstable roots, no expectational errors).
    """
    nrow, ncol = mat.shape
    if nrow == 0 or ncol == 0:
        return (np.zeros((nrow, 0), dtype=complex), np.zeros(0),
                np.zeros((ncol, 0), dtype=complex))
    u, d, vh = np.linalg.svd(mat)
    big = d > REALSMALL
    return u[:, :len(d)][:, big], d[big], vh.conj().T[:, :len(d)][:, big]


def gensys(g0, g1, c, psi, pi, div=1.01):
    """
    Python implementation of Sims (2002) gensys solver.
    g0*y(t) = g1*y(t-1) + c + psi*z(t) + pi*eta(t)

    Solution: y(t) = TTT*y(t-1) + CCC + RRR*z(t)

    Returns:
        TTT, CCC, RRR, eu

    Raises:
        NumericalDegeneracy: non-finite inputs, coincident zeros in the QZ
            pencil, failed reordering or a singular transformed system.
        SolutionDoesNotExist: more unstable roots than the expectational
            errors can offset.
        SolutionNotUnique: fewer unstable roots than expectational errors.
    """
    g0 = np.asarray(g0, dtype=float)
    g1 = np.asarray(g1, dtype=float)
    c = np.asarray(c, dtype=float).reshape(-1)
    psi = np.asarray(psi, dtype=float)
    pi = np.asarray(pi, dtype=float)
    n = g0.shape[0]

    if not all(np.all(np.isfinite(x)) for x in (g0, g1, c, psi, pi)):
        raise NumericalDegeneracy("Structural matrices contain non-finite values", eu=[-3, -3])

    # QZ Decomposition (Generalized Schur)
    # Complex Schur form, as in Sims' gensys.m
    try:
        a, b, _, _ = qz(g0, g1, output='complex')
    except (ValueError, LinAlgError) as e:
        raise NumericalDegeneracy(f"QZ decomposition failed: {e}", eu=[-3, -3]) from e
    a_diag, b_diag = np.abs(np.diag(a)), np.abs(np.diag(b))
    if np.any((a_diag < REALSMALL) & (b_diag < REALSMALL)):
        raise NumericalDegeneracy("Coincident zeros in the generalized Schur decomposition", eu=[-2, -2])

    # select[i] = !(abs(b[i, i]) > div * abs(a[i, i]))
    def select_stable(alpha, beta):
        return np.abs(beta) <= div * np.abs(alpha)

    try:
        a, b, _, _, q, z = ordqz(g0, g1, sort=select_stable, output='complex')
    except ValueError as e:
        raise NumericalDegeneracy(f"QZ reordering failed: {e}", eu=[-3, -3]) from e

    nunstab = int(n - np.sum(select_stable(np.diag(a), np.diag(b))))
    nstab = n - nunstab

    # scipy returns g0 = q a z'; Sims works with q' (rows partitioned)
    qt = q.conj().T
    q1, q2 = qt[:nstab, :], qt[nstab:, :]

    ueta, deta, veta = _svd_bigev(q2 @ pi)
    if len(deta) < nunstab:
        raise SolutionDoesNotExist(
            f"{nunstab} unstable roots but only {len(deta)} independent expectational errors",
            eu=[0, 0])

    ueta1, deta1, veta1 = _svd_bigev(q1 @ pi)
    if veta1.shape[1] == 0:
        unique = True
    else:
        loose = veta1 - veta @ (veta.conj().T @ veta1)
        dl = np.linalg.svd(loose, compute_uv=False)
        unique = np.sum(np.abs(dl) > REALSMALL * n) == 0
    if not unique:
        raise SolutionNotUnique(
            f"{nunstab} unstable roots do not pin down all expectational errors",
            eu=[1, 0])

    # tmat = [I  -(ueta * deta^-1 * veta' * veta1 * deta1 * ueta1')']
    phi = ueta @ ((veta.conj().T / deta[:, None]) @ veta1 @ (deta1[:, None] * ueta1.conj().T))
    tmat = np.hstack([np.eye(nstab), -phi.conj().T])

    G0 = np.vstack([tmat @ a,
                    np.hstack([np.zeros((nunstab, nstab)), np.eye(nunstab)])])
    G1 = np.vstack([tmat @ b, np.zeros((nunstab, n))])

    usix = slice(nstab, n)
    try:
        G0I = np.linalg.inv(G0)
        c_unstab = np.linalg.solve(a[usix, usix] - b[usix, usix], q2 @ c) if nunstab else np.zeros(0)
    except np.linalg.LinAlgError as e:
        raise NumericalDegeneracy(f"Singular transformed system: {e}", eu=[-3, -3]) from e

    G1 = G0I @ G1
    C = G0I @ np.concatenate([tmat @ (qt @ c), c_unstab])
    impact = G0I @ np.vstack([tmat @ (qt @ psi), np.zeros((nunstab, psi.shape[1]))])

    TTT = np.real(z @ G1 @ z.conj().T)
    CCC = np.real(z @ C)
    RRR = np.real(z @ impact)

    logger.debug("gensys: n=%d, nstable=%d, nunstab=%d", n, nstab, nunstab)
    return TTT, CCC, RRR, [1, 1]
