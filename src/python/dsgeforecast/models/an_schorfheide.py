import numpy as np
from ..model import AbstractModel, Parameter


def _index(names):
    return {name: i for i, name in enumerate(names)}


class AnSchorfheide(AbstractModel):
    """
    Small-scale New Keynesian model of An and Schorfheide (2007): three
    observables (output growth, inflation, nominal rate) and three shocks.
    """
    def __init__(self):
        super().__init__()
        self.init_parameters()
        self.init_model_indices()

    def init_parameters(self):
        self.add_parameter(Parameter("tau", 1.9937))
        self.add_parameter(Parameter("kappa", 0.7306))
        self.add_parameter(Parameter("psi_1", 1.1434))
        self.add_parameter(Parameter("psi_2", 0.4536))
        self.add_parameter(Parameter("rA", 0.0313))
        self.add_parameter(Parameter("pi_star", 8.1508))
        self.add_parameter(Parameter("gamma_Q", 1.5))
        self.add_parameter(Parameter("rho_R", 0.3847))
        self.add_parameter(Parameter("rho_g", 0.3777))
        self.add_parameter(Parameter("rho_z", 0.9579))
        self.add_parameter(Parameter("sigma_R", 0.4900))
        self.add_parameter(Parameter("sigma_g", 1.4594))
        self.add_parameter(Parameter("sigma_z", 0.9247))
        self.add_parameter(Parameter("e_y", 0.20*0.579923))
        self.add_parameter(Parameter("e_pi", 0.20*1.470832))
        self.add_parameter(Parameter("e_R", 0.20*2.237937))

    def init_model_indices(self):
        self.endogenous_states.update(_index(["y_t", "pi_t", "R_t", "y_t1", "g_t", "z_t", "Ey_t", "Epi_t"]))
        self.exogenous_shocks.update(_index(["z_sh", "g_sh", "rm_sh"]))
        self.expected_shocks.update(_index(["Ey_sh", "Epi_sh"]))
        self.equilibrium_conditions.update(
            _index(["eq_euler", "eq_phillips", "eq_mp", "eq_y_t1", "eq_g", "eq_z", "eq_Ey", "eq_Epi"]))
        self.observables.update(_index(["obs_gdp", "obs_cpi", "obs_nominalrate"]))
        self.pseudo_observables.update(_index(["y_t", "pi_t", "z_t", "NominalFFR"]))

    def eqcond(self):
        endo = self.endogenous_states
        exo = self.exogenous_shocks
        ex = self.expected_shocks
        eq = self.equilibrium_conditions

        n = self.n_states
        gamma0 = np.zeros((n, n))
        gamma1 = np.zeros((n, n))
        c = np.zeros(n)
        psi = np.zeros((n, self.n_shocks_exogenous))
        pi = np.zeros((n, self.n_shocks_expectational))

        beta = 1.0 / (1.0 + self["rA"] / 400.0)

        # Consumption Euler equation
        e = eq["eq_euler"]
        gamma0[e, endo["y_t"]] = 1.0
        gamma0[e, endo["R_t"]] = 1.0 / self["tau"]
        gamma0[e, endo["g_t"]] = -(1.0 - self["rho_g"])
        gamma0[e, endo["z_t"]] = -self["rho_z"] / self["tau"]
        gamma0[e, endo["Ey_t"]] = -1.0
        gamma0[e, endo["Epi_t"]] = -1.0 / self["tau"]

        # NK Phillips curve
        e = eq["eq_phillips"]
        gamma0[e, endo["y_t"]] = -self["kappa"]
        gamma0[e, endo["pi_t"]] = 1.0
        gamma0[e, endo["g_t"]] = self["kappa"]
        gamma0[e, endo["Epi_t"]] = -beta

        # Monetary policy rule
        e = eq["eq_mp"]
        gamma0[e, endo["y_t"]] = -(1.0 - self["rho_R"]) * self["psi_2"]
        gamma0[e, endo["pi_t"]] = -(1.0 - self["rho_R"]) * self["psi_1"]
        gamma0[e, endo["R_t"]] = 1.0
        gamma0[e, endo["g_t"]] = (1.0 - self["rho_R"]) * self["psi_2"]
        gamma1[e, endo["R_t"]] = self["rho_R"]
        psi[e, exo["rm_sh"]] = 1.0

        # Output lag
        gamma0[eq["eq_y_t1"], endo["y_t1"]] = 1.0
        gamma1[eq["eq_y_t1"], endo["y_t"]] = 1.0

        # Exogenous processes
        for eq_name, state, rho, shock in [("eq_g", "g_t", "rho_g", "g_sh"), ("eq_z", "z_t", "rho_z", "z_sh")]:
            gamma0[eq[eq_name], endo[state]] = 1.0
            gamma1[eq[eq_name], endo[state]] = self[rho]
            psi[eq[eq_name], exo[shock]] = 1.0

        # Expectation errors
        for eq_name, state, exp_state, shock in [("eq_Ey", "y_t", "Ey_t", "Ey_sh"),
                                                 ("eq_Epi", "pi_t", "Epi_t", "Epi_sh")]:
            gamma0[eq[eq_name], endo[state]] = 1.0
            gamma1[eq[eq_name], endo[exp_state]] = 1.0
            pi[eq[eq_name], ex[shock]] = 1.0

        return gamma0, gamma1, c, psi, pi

    def measurement(self, TTT, RRR, CCC):
        endo = self.endogenous_states
        exo = self.exogenous_shocks
        obs = self.observables

        ZZ = np.zeros((self.n_observables, self.n_states))
        DD = np.zeros(self.n_observables)
        EE = np.zeros((self.n_observables, self.n_observables))
        QQ = np.zeros((self.n_shocks_exogenous, self.n_shocks_exogenous))

        ## Output growth
        ZZ[obs["obs_gdp"], endo["y_t"]] = 1.0
        ZZ[obs["obs_gdp"], endo["y_t1"]] = -1.0
        ZZ[obs["obs_gdp"], endo["z_t"]] = 1.0
        DD[obs["obs_gdp"]] = self["gamma_Q"]

        ## Inflation
        ZZ[obs["obs_cpi"], endo["pi_t"]] = 4.0
        DD[obs["obs_cpi"]] = self["pi_star"]

        ## Federal Funds Rate
        ZZ[obs["obs_nominalrate"], endo["R_t"]] = 4.0
        DD[obs["obs_nominalrate"]] = self["pi_star"] + self["rA"] + 4.0*self["gamma_Q"]

        # Measurement error
        for name, err in [("obs_gdp", "e_y"), ("obs_cpi", "e_pi"), ("obs_nominalrate", "e_R")]:
            EE[obs[name], obs[name]] = self[err]**2

        # Variance of innovations
        for shock, sigma in [("z_sh", "sigma_z"), ("g_sh", "sigma_g"), ("rm_sh", "sigma_R")]:
            QQ[exo[shock], exo[shock]] = self[sigma]**2

        return ZZ, DD, QQ, EE

    def pseudo_measurement(self, TTT, RRR, CCC):
        endo = self.endogenous_states
        pseudo = self.pseudo_observables

        ZZ_pseudo = np.zeros((self.n_pseudo_observables, self.n_states))
        DD_pseudo = np.zeros(self.n_pseudo_observables)

        ZZ_pseudo[pseudo["y_t"], endo["y_t"]] = 1.0
        ZZ_pseudo[pseudo["pi_t"], endo["pi_t"]] = 1.0
        ZZ_pseudo[pseudo["z_t"], endo["z_t"]] = 1.0

        # Annualized nominal rate, as in the measurement equation
        ZZ_pseudo[pseudo["NominalFFR"], endo["R_t"]] = 4.0
        DD_pseudo[pseudo["NominalFFR"]] = self["pi_star"] + self["rA"] + 4.0*self["gamma_Q"]

        return ZZ_pseudo, DD_pseudo
