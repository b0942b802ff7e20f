import pytest

from scripts.climber import deploy_scenario


@pytest.fixture
def deployer(accounts):
    return accounts[0]


@pytest.fixture
def attacker(accounts):
    return accounts[1]


@pytest.fixture
def proposer(accounts):
    return accounts[2]


@pytest.fixture
def sweeper(accounts):
    return accounts[3]


@pytest.fixture
def scenario(deployer, proposer, sweeper):
    return deploy_scenario(deployer, proposer, sweeper)


@pytest.fixture
def attacker_contract(project, scenario, attacker):
    return project.ClimberAttacker.deploy(scenario.timelock.address, sender=attacker)
