from dataclasses import dataclass

from rich.pretty import pprint

from hawser import *


@dataclass
class Start:
    url: str = argument("-u", "--url", descr="service url", required=True)
    port: Int16 = argument("-p", "--port", descr="listening port", default=8080)


@controller(name="tool", descr="demo tool", colorful=True, shell=True)
@dataclass
class Args:
    name: str = argument("-n", "--name", descr="user name", required=True)
    verbose: bool = argument("-v", "--verbose", descr="chatty output", default=False)
    gui: bool = argument("--no-gui", descr="run without a window", invert=True)
    start: Start = argument("start", descr="start the service")


if __name__ == '__main__':
    pprint(parse(Args))
