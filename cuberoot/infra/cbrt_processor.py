from cuberoot.core.processing import IntegerProcessor, cube_root
from cuberoot.core.ports.processor import Processor


class CubeRootProcessor(IntegerProcessor, Processor):
    """
    Answers each integer request with the description of its real cube root,
    six fractional digits:

        "27"  -> "The cube root of 27 is 3.000000."
        "abc" -> '"abc" is not integer'
    """
    TEMPLATE = "The cube root of {value} is {result:f}."

    def __init__(self) -> None:
        super().__init__(compute=cube_root, template=self.TEMPLATE)
