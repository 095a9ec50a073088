import argparse
import random
import time

import httpx

from factstream.events.emitter import FactClient

FACTS = [
    "Octopuses have three hearts.",
    "Honey never spoils.",
    "Bananas are berries, strawberries are not.",
    "A day on Venus is longer than its year.",
    "Wombat droppings are cube-shaped.",
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Publish random facts to a running hub")
    parser.add_argument("--url", default="http://127.0.0.1:8000")
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between facts")
    parser.add_argument("--count", type=int, default=0, help="Stop after N facts (0 = forever)")
    args = parser.parse_args()

    sent = 0
    with FactClient(args.url) as client:
        while args.count == 0 or sent < args.count:
            fact = {"info": random.choice(FACTS), "source": "fake_facts"}
            try:
                envelope = client.submit(fact)
                print(f"#{envelope['sequence']}: {fact['info']}")
            except httpx.HTTPError as exc:
                print(f"publish failed: {exc}")
            sent += 1
            time.sleep(args.interval)


if __name__ == "__main__":
    main()
