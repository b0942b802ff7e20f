from ape import networks
from ape import reverts  # noqa: F401
from eth_abi import encode
from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# offline instance, only used for unit conversion and hashing
w3 = Web3()


def get_sig(signature):
    """4-byte selector of a function signature, e.g. ``"updateDelay(uint64)"``."""
    return w3.keccak(text=signature)[:4]


def get_role(name):
    """AccessControl role id, i.e. ``keccak256(name)``."""
    return w3.keccak(text=name)


def get_calldata(signature, arg_types, args):
    return get_sig(signature) + encode(arg_types, args)


def set_balance(account, amount):
    address = account.address if hasattr(account, "address") else account
    networks.provider.set_balance(address, amount)
