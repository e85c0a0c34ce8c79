# Small token builders shared by the test modules.
from cfe.types import ConstantToken, VariableToken, OperatorToken, FunctionToken, GroupingToken, Side


def num(x):
    return ConstantToken(str(x))

def const(symbol):
    return ConstantToken(symbol)

def var(name):
    return VariableToken(name)

def op(symbol, arity=None):
    return OperatorToken(symbol, arity=arity)

def fn(name):
    return FunctionToken(name)

LP = GroupingToken("(", side=Side.OPEN)
RP = GroupingToken(")", side=Side.CLOSE)
LB = GroupingToken("[", side=Side.OPEN)
RB = GroupingToken("]", side=Side.CLOSE)
COMMA = GroupingToken(",", side=Side.SEPARATOR)
